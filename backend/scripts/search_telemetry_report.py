#!/usr/bin/env python3
import argparse
import json
import re
import sys
from collections import Counter
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

TELEMETRY_PATTERN = re.compile(r"search_telemetry=(\{.*\})")


def _iter_lines(paths: List[str]) -> Iterable[str]:
    if not paths:
        for line in sys.stdin:
            yield line.rstrip("\n")
        return
    for path in paths:
        with open(path, "r", encoding="utf-8", errors="replace") as handle:
            for line in handle:
                yield line.rstrip("\n")


def _parse_payload(line: str) -> Optional[Dict[str, Any]]:
    match = TELEMETRY_PATTERN.search(line)
    if not match:
        return None
    try:
        value = json.loads(match.group(1))
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


def _safe_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _percentile(values: List[int], pct: float) -> int:
    if not values:
        return 0
    ordered = sorted(values)
    index = min(len(ordered) - 1, int(round(pct * (len(ordered) - 1))))
    return ordered[index]


def build_report(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    result_types: Counter[str] = Counter()
    origin_sources: Counter[str] = Counter()
    service_types: Counter[str] = Counter()
    sort_orders: Counter[str] = Counter()
    elapsed: List[int] = []
    failures = 0
    empty = 0
    advisories = 0

    for row in rows:
        result_types[str(row.get("result_type") or "all")] += 1
        origin_sources[str(row.get("origin_source") or "none")] += 1
        service_types[str(row.get("service_type") or "any")] += 1
        sort_orders[str(row.get("sort_order") or "none")] += 1
        elapsed.append(_safe_int(row.get("elapsed_ms")))
        if row.get("failed"):
            failures += 1
        elif _safe_int(row.get("results")) == 0:
            empty += 1
        if _safe_int(row.get("advisories")) > 0:
            advisories += 1

    total = len(rows)
    return {
        "total_searches": total,
        "failure_rate": round(failures / total, 4) if total else 0.0,
        "empty_rate": round(empty / total, 4) if total else 0.0,
        "advisory_rate": round(advisories / total, 4) if total else 0.0,
        "result_type_counts": dict(result_types),
        "origin_source_counts": dict(origin_sources),
        "service_type_counts": dict(service_types.most_common()),
        "sort_order_counts": dict(sort_orders),
        "latency_ms": {"p50": _percentile(elapsed, 0.5), "p95": _percentile(elapsed, 0.95)},
    }


def print_human(report: Dict[str, Any]) -> None:
    print(f"Total searches: {report['total_searches']}")
    print(f"Failure rate: {report['failure_rate']:.2%}  Empty rate: {report['empty_rate']:.2%}")
    print(f"Searches with advisories: {report['advisory_rate']:.2%}")
    print("Origin sources:")
    for source, count in sorted(report["origin_source_counts"].items(), key=lambda x: x[1], reverse=True):
        print(f"  - {source}: {count}")
    print("Service types:")
    for service, count in report["service_type_counts"].items():
        print(f"  - {service}: {count}")
    latency = report["latency_ms"]
    print(f"Latency: p50={latency['p50']}ms p95={latency['p95']}ms")


def main() -> int:
    parser = argparse.ArgumentParser(description="Summarize PawPals search_telemetry logs.")
    parser.add_argument("log_files", nargs="*", help="Log files to parse. If omitted, read stdin.")
    parser.add_argument("--json-out", default="", help="Optional path to write JSON summary.")
    args = parser.parse_args()

    rows: List[Dict[str, Any]] = []
    for line in _iter_lines(args.log_files):
        payload = _parse_payload(line)
        if payload:
            rows.append(payload)

    report = build_report(rows)
    print_human(report)

    if args.json_out:
        path = Path(args.json_out)
        path.write_text(json.dumps(report, indent=2) + "\n", encoding="utf-8")
        print(f"Wrote report: {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
