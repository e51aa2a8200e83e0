import json
from pathlib import Path

import pytest
import yaml

from cli.main import main


def _result_line(capsys):
    lines = [line for line in capsys.readouterr().out.splitlines() if line.strip()]
    return json.loads(lines[-1])


def test_cli_runs_a_preset(tmp_path, capsys):
    run_dir = tmp_path / "run"
    code = main(["--preset", "binary-not", "--run-dir", str(run_dir)])
    payload = _result_line(capsys)
    assert payload["converged"] == (code == 0)
    assert payload["mode"] == "evolve"
    assert (run_dir / "metrics.jsonl").exists()
    assert (run_dir / "attempts.jsonl").exists()
    assert (run_dir / "manifest.json").exists()
    assert Path(payload["network"]).exists()


def test_cli_lists_presets(capsys):
    with pytest.raises(SystemExit) as info:
        main(["--list-presets"])
    assert info.value.code == 0
    names = capsys.readouterr().out.split()
    assert "xor" in names and "caesar-encode" in names and "binary-not" in names


def test_cli_merges_partial_override(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    override = tmp_path / "override.yaml"
    override.write_text(
        yaml.safe_dump({"run": {"mode": "train"}, "trainer": {"max_batches": 1, "max_batch_sets": 2}})
    )
    dump = tmp_path / "resolved.json"
    main(
        [
            "--preset",
            "identity-pair",
            "--config",
            str(override),
            "--seed",
            "4",
            "--dump-config",
            str(dump),
            "--quiet",
        ]
    )
    payload = _result_line(capsys)
    resolved = json.loads(dump.read_text())
    assert resolved["run"]["mode"] == "train"
    assert resolved["run"]["seed"] == 4
    assert resolved["data"]["inputs"] == ["a", "b", "c"]
    assert payload["mode"] == "train"
    assert payload["run_id"]
    assert Path(".artifacts", payload["run_id"], "manifest.json").exists()
