"""Audit log and export of cleaning actions."""

from __future__ import annotations

import csv
import json
from datetime import datetime, timezone
from pathlib import Path

from .cleaner import summarize
from .constants import CLEAN_LOG_PATH
from .models import CleaningAction

_FIELDS = ["message_id", "action", "error"]


def _rows(actions: list[CleaningAction]) -> list[dict]:
    return [
        {"message_id": a.message_id, "action": a.action.value, "error": a.error or ""}
        for a in actions
    ]


def save_clean_log(
    actions: list[CleaningAction],
    provider: str,
    dry_run: bool,
    path: Path | None = None,
) -> None:
    """Append a cleaning run to the JSON audit log."""
    path = Path(path or CLEAN_LOG_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)

    log: list = []
    if path.exists():
        with open(path) as f:
            try:
                log = json.load(f)
            except json.JSONDecodeError:
                log = []

    entry = {
        "date": datetime.now(timezone.utc).isoformat(),
        "provider": provider,
        "dry_run": dry_run,
        "summary": {kind.value: count for kind, count in summarize(actions).items()},
        "actions": _rows(actions),
    }
    log.append(entry)

    with open(path, "w") as f:
        json.dump(log, f, indent=2)


def export_actions(actions: list[CleaningAction], format: str, output_path: str | Path) -> None:
    """Export an action log to a file.

    Args:
        actions: The actions to export.
        format: Output format, either 'csv' or 'json'.
        output_path: Path to write the output file.
    """
    rows = _rows(actions)

    if format == "csv":
        with open(output_path, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=_FIELDS)
            writer.writeheader()
            writer.writerows(rows)
    elif format == "json":
        with open(output_path, "w") as f:
            json.dump(rows, f, indent=2)
    else:
        raise ValueError(f"Unsupported export format: {format!r}")
