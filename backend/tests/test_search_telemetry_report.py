import importlib.util
import json
from pathlib import Path

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "search_telemetry_report.py"


def _load_report_module():
    spec = importlib.util.spec_from_file_location("search_telemetry_report", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_report_counts_failures_empties_and_origins():
    report_mod = _load_report_module()
    lines = [
        "INFO:app.services.search_pipeline:search_telemetry="
        + json.dumps({"results": 4, "origin_source": "request", "elapsed_ms": 12, "service_type": "walk"}),
        "INFO:app.services.search_pipeline:search_telemetry="
        + json.dumps({"results": 0, "origin_source": None, "elapsed_ms": 30, "advisories": 1}),
        "INFO:app.services.search_pipeline:search_telemetry="
        + json.dumps({"results": 0, "failed": True, "elapsed_ms": 5}),
        "unrelated line",
        "search_telemetry={not json",
    ]
    rows = [row for row in (report_mod._parse_payload(line) for line in lines) if row]
    report = report_mod.build_report(rows)

    assert report["total_searches"] == 3
    assert report["failure_rate"] == round(1 / 3, 4)
    assert report["empty_rate"] == round(1 / 3, 4)
    assert report["advisory_rate"] == round(1 / 3, 4)
    assert report["origin_source_counts"] == {"request": 1, "none": 2}
    assert report["latency_ms"] == {"p50": 12, "p95": 30}
