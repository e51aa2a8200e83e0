import json

import pytest
import yaml

from backpropnets import config as run_configs
from backpropnets.training.evolver import EvolverConfig
from backpropnets.training.trainer import TrainerConfig


def test_builtin_presets_are_listed():
    names = set(run_configs.presets())
    assert {"xor", "caesar-encode", "caesar-decode", "identity-pair"} <= names


def test_file_presets_are_loaded():
    preset = run_configs.load_preset("binary-not")
    assert preset["data"]["inputs"] == ["0", "1"]
    assert preset["run"]["mode"] == "evolve"


def test_file_presets_override_builtins(tmp_path, monkeypatch):
    (tmp_path / "xor.yaml").write_text(yaml.safe_dump({"network": {"x_size": 7}, "data": {}}))
    (tmp_path / "notes.txt").write_text("ignored")
    monkeypatch.setattr(run_configs, "_PRESET_DIR", tmp_path)
    found = run_configs.presets()
    assert found["xor"]["network"] == {"x_size": 7}
    assert "notes" not in found
    assert "caesar-encode" in found


def test_load_preset_returns_copies():
    first = run_configs.load_preset("xor")
    first["network"]["x_size"] = 99
    assert run_configs.load_preset("xor")["network"]["x_size"] == 2


def test_unknown_preset():
    with pytest.raises(KeyError):
        run_configs.load_preset("does-not-exist")


def test_caesar_presets_shift_the_alphabet():
    encode = run_configs.load_preset("caesar-encode")["data"]
    decode = run_configs.load_preset("caesar-decode")["data"]
    assert len(encode["inputs"]) == 26
    assert encode["outputs"][:3] == ["d", "e", "f"]
    assert encode["outputs"][-1] == "c"
    lookup = dict(zip(decode["inputs"], decode["outputs"]))
    assert all(lookup[e] == p for p, e in zip(encode["inputs"], encode["outputs"]))


def test_merge_is_deep_and_pure():
    base = {"run": {"seed": 1, "mode": "train"}, "data": {"inputs": ["a"]}}
    merged = run_configs.merge(base, {"run": {"seed": 2}, "extra": 1})
    assert merged == {
        "run": {"seed": 2, "mode": "train"},
        "data": {"inputs": ["a"]},
        "extra": 1,
    }
    assert base["run"]["seed"] == 1


def test_load_config_reads_yaml_and_json(tmp_path):
    data = {"run": {"mode": "train"}}
    yaml_path = tmp_path / "override.yaml"
    yaml_path.write_text(yaml.safe_dump(data))
    json_path = tmp_path / "override.json"
    json_path.write_text(json.dumps(data))
    assert run_configs.load_config(yaml_path) == data
    assert run_configs.load_config(json_path) == data

    bad = tmp_path / "override.txt"
    bad.write_text("run: {}")
    with pytest.raises(ValueError):
        run_configs.load_config(bad)

    listing = tmp_path / "list.yaml"
    listing.write_text("- 1\n- 2\n")
    with pytest.raises(TypeError):
        run_configs.load_config(listing)


def test_config_hash_is_stable():
    a = {"b": 1, "a": [1, 2]}
    b = {"a": [1, 2], "b": 1}
    assert run_configs.config_hash(a) == run_configs.config_hash(b)
    assert len(run_configs.config_hash(a)) == 12


def test_build_validates_sections_and_sizes():
    config = run_configs.load_preset("xor")
    network_cfg, trainer_cfg, evolver_cfg, training_set = run_configs.build(config)
    assert network_cfg.x_size == training_set.x_size == 2
    assert isinstance(trainer_cfg, TrainerConfig)
    assert isinstance(evolver_cfg, EvolverConfig)

    with pytest.raises(KeyError):
        run_configs.build({"network": config["network"]})
    mismatched = run_configs.merge(config, {"network": {"x_size": 1}})
    with pytest.raises(ValueError):
        run_configs.build(mismatched)
    with pytest.raises(KeyError):
        run_configs.build(run_configs.merge(config, {"trainer": {"epochs": 3}}))


def test_run_config_writes_artifacts(tmp_path):
    config = run_configs.merge(
        run_configs.load_preset("identity-pair"),
        {
            "trainer": {"max_batch_sets": 2, "max_batches": 1},
            "run": {"run_dir": str(tmp_path / "run"), "mode": "train"},
        },
    )
    result = run_configs.run_config(config)
    assert result.mode == "train"
    assert result.result >= 0

    run_dir = tmp_path / "run"
    lines = [json.loads(line) for line in (run_dir / "metrics.jsonl").read_text().splitlines()]
    assert lines and {"epoch", "mismatches", "bit_errors", "learning_rate"} <= set(lines[0])
    assert (run_dir / "metrics.csv").exists()
    assert (run_dir / "config.json").exists()

    manifest = json.loads((run_dir / "manifest.json").read_text())
    assert manifest["outcome"]["result"] == result.result
    assert manifest["outcome"]["training_stats"]["teach_total"] > 0
    assert manifest["config"]["run"]["mode"] == "train"
    assert result.network_path.endswith("network.json")


def test_run_config_rejects_unknown_mode(tmp_path):
    config = run_configs.merge(
        run_configs.load_preset("identity-pair"),
        {"run": {"mode": "sprint", "run_dir": str(tmp_path)}},
    )
    with pytest.raises(ValueError):
        run_configs.run_config(config)
