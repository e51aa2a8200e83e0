"""Command line entry point for BackpropNets runs."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Iterable, Mapping

from backpropnets import config as run_configs
from backpropnets.core.network import NetworkConfig
from backpropnets.core.types import RunResult


def _format_result(result: RunResult, run_id: str | None = None) -> str:
    payload = {
        "result": result.result,
        "converged": result.result == 0,
        "mode": result.mode,
        "network": result.network_path,
        "metrics": result.metrics_path,
        "manifest": result.manifest_path,
    }
    if run_id is not None:
        payload["run_id"] = run_id
    return json.dumps(payload, sort_keys=True)


def _print_startup_summary(name: str, config: Mapping[str, object]) -> None:
    network_cfg = NetworkConfig.from_mapping(config["network"])  # type: ignore[arg-type]
    data_cfg = config["data"]
    run_cfg = config.get("run", {})
    dims = network_cfg.layer_dims()
    pairs = len(data_cfg.get("inputs", data_cfg))  # type: ignore[union-attr]
    print("=== BackpropNets run ===")
    print(f"Config        : {name}")
    print(f"Mode          : {run_cfg.get('mode', 'evolve')}")  # type: ignore[union-attr]
    print(f"Dimensions    : {dims}")
    print(f"Pairs         : {pairs}")
    print(f"Seed          : {run_cfg.get('seed', 0)}")  # type: ignore[union-attr]
    print(f"Weights       : {sum(a * b for a, b in zip(dims[:-1], dims[1:]))}")
    print("========================")


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    preset_names = sorted(run_configs.presets().keys())
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=preset_names,
        default="xor",
        help="Preset configuration to execute",
    )
    parser.add_argument("--config", type=Path, help="Optional JSON/YAML config override")
    parser.add_argument(
        "--mode", choices=run_configs.MODES, help="Override the run mode"
    )
    parser.add_argument("--seed", type=int, help="Seed used for weight initialisation")
    parser.add_argument(
        "--max-attempts", type=int, help="Override the evolver attempt budget"
    )
    parser.add_argument("--run-dir", type=Path, help="Directory for run artifacts")
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )
    parser.add_argument(
        "--quiet", action="store_true", help="Only print the JSON result line"
    )
    return parser.parse_args(argv)


def main(argv: Iterable[str] | None = None) -> int:
    args = parse_args(argv)

    if args.list_presets:
        for name in sorted(run_configs.presets().keys()):
            print(name)
        raise SystemExit(0)

    config_name = args.preset
    config = dict(run_configs.load_preset(args.preset))
    if args.config:
        override = run_configs.load_config(args.config)
        if run_configs.REQUIRED_SECTIONS <= set(override.keys()):
            config = json.loads(json.dumps(override))
        else:
            config = run_configs.merge(config, override)
        config_name = str(args.config)

    run_cfg = config.setdefault("run", {})
    if args.mode:
        run_cfg["mode"] = args.mode
    if args.seed is not None:
        run_cfg["seed"] = int(args.seed)
    if args.max_attempts is not None:
        config.setdefault("evolver", {})["max_attempts"] = int(args.max_attempts)

    run_id: str | None = None
    if args.run_dir:
        run_cfg["run_dir"] = str(args.run_dir)
    elif args.config:
        run_id = run_configs.config_hash(config)
        run_cfg["run_dir"] = str(Path(".artifacts") / run_id)

    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    if not args.quiet:
        _print_startup_summary(config_name, config)

    result = run_configs.run_config(config)
    print(_format_result(result, run_id=run_id))
    return 0 if result.result == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
