import csv
import json

from backpropnets.reporting.artifacts import write_manifest
from backpropnets.reporting.metrics import CsvSink, JsonlSink, MemorySink


def test_jsonl_sink_keeps_numeric_metrics(tmp_path):
    sink = JsonlSink(tmp_path / "metrics.jsonl", split="train", seed=3, sha="abc")
    sink.on_epoch(1, {"mismatches": 2, "learning_rate": 0.5, "note": "skip"})
    sink(2, {"mismatches": 0, "learning_rate": 0.6})
    rows = [json.loads(line) for line in sink.path.read_text().splitlines()]
    assert rows[0] == {
        "epoch": 1,
        "split": "train",
        "seed": 3,
        "sha": "abc",
        "mismatches": 2,
        "learning_rate": 0.5,
    }
    assert rows[1]["epoch"] == 2


def test_csv_sink_writes_header_once(tmp_path):
    sink = CsvSink(tmp_path / "metrics.csv")
    sink.on_epoch(1, {"mismatches": 3})
    sink.on_epoch(2, {"mismatches": 1, "late": 4})
    with sink.path.open() as handle:
        rows = list(csv.DictReader(handle))
    assert [row["mismatches"] for row in rows] == ["3", "1"]
    assert "late" not in rows[0]


def test_memory_sink_tracks_history():
    sink = MemorySink()
    assert sink.last == {}
    sink.on_epoch(1, {"mismatches": 1})
    sink(2, {"mismatches": 0, "converged": True})
    assert [epoch for epoch, _ in sink.history] == [1, 2]
    assert sink.last == {"mismatches": 0, "converged": 1}


def test_manifest_records_config_and_outcome(tmp_path):
    path = write_manifest(
        tmp_path / "out" / "manifest.json",
        config={"run": {"seed": 1}},
        outcome={"result": 0},
    )
    manifest = json.loads(open(path).read())
    assert manifest["config"]["run"]["seed"] == 1
    assert manifest["outcome"]["result"] == 0
    assert "git_sha" in manifest and "generated_at" in manifest
