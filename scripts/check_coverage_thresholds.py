"""Fail when core hvclient modules drop below their coverage floor.

Reads the JSON report written by ``pytest --cov=hvclient --cov-report=json``.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Final

MODULE_FLOORS: Final[dict[str, float]] = {
    "hvclient/blobs/_stream.py": 90.0,
    "hvclient/blobs/_hashing.py": 95.0,
    "hvclient/blobs/_client.py": 85.0,
    "hvclient/auth/_manager.py": 92.0,
    "hvclient/auth/_keyset.py": 90.0,
    "hvclient/connection.py": 85.0,
}


def _module_key(path: str) -> str:
    """Map a coverage file key to ``hvclient/...`` regardless of OS or install prefix."""
    normalized = path.replace("\\", "/")
    index = normalized.rfind("hvclient/")
    return normalized[index:] if index >= 0 else normalized


def _percentages(report_path: Path) -> dict[str, float]:
    """Collect ``percent_covered`` per module from a coverage JSON report."""
    report = json.loads(report_path.read_text(encoding="utf-8"))
    files = report.get("files") if isinstance(report, dict) else None
    if not isinstance(files, dict):
        msg = f"{report_path} is not a coverage.py JSON report."
        raise TypeError(msg)

    percentages: dict[str, float] = {}
    for key, entry in files.items():
        summary = entry.get("summary") if isinstance(entry, dict) else None
        value = summary.get("percent_covered") if isinstance(summary, dict) else None
        if isinstance(value, int | float):
            percentages[_module_key(key)] = float(value)
    return percentages


def check(report_path: Path, floors: dict[str, float] = MODULE_FLOORS) -> list[str]:
    """Return one message per module that is missing or under its floor."""
    percentages = _percentages(report_path)
    failures: list[str] = []
    for module, floor in floors.items():
        percent = percentages.get(module)
        if percent is None:
            failures.append(f"{module}: not in report")
        elif percent < floor:
            failures.append(f"{module}: {percent:.2f}% < {floor:.2f}%")
    return failures


def main() -> int:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("report", nargs="?", default="coverage.json", help="coverage.py JSON report path.")
    args = parser.parse_args()

    failures = check(Path(args.report))
    for failure in failures:
        sys.stderr.write(f"{failure}\n")
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
