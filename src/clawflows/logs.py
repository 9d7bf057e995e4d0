# logs.py
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .interpolation import to_json
from .trace import Trace


@dataclass(frozen=True)
class LogSummary:
    """Summary of one saved run log."""
    file: str
    started_at: str | None = None
    step_count: int = 0
    completed: int = 0
    skipped: int = 0
    dry_run: bool = False
    duration_ms: Optional[int] = None
    error: str | None = None


def _timestamp() -> str:
    # filesystem-safe ISO timestamp, sorts chronologically
    now = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return now.replace(":", "-").replace(".", "-")


def save_log(trace: Trace, name: str, logs_root: str | Path) -> Path:
    """Write `trace` as JSON to <logs_root>/<name>/<timestamp>.json."""
    log_dir = Path(logs_root) / name
    log_dir.mkdir(parents=True, exist_ok=True)
    path = log_dir / f"{_timestamp()}.json"
    path.write_text(to_json(trace.to_dict(), indent=2), encoding="utf-8")
    return path


def _parse_time(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _summarize(path: Path) -> LogSummary:
    try:
        log = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        return LogSummary(file=path.name, error=str(e))
    if not isinstance(log, dict):
        return LogSummary(file=path.name, error="log is not a JSON object")

    steps = [s for s in (log.get("steps") or []) if isinstance(s, dict)]
    duration = None
    if log.get("startedAt") and log.get("completedAt"):
        try:
            delta = _parse_time(log["completedAt"]) - _parse_time(log["startedAt"])
            duration = int(delta.total_seconds() * 1000)
        except ValueError:
            duration = None

    return LogSummary(
        file=path.name,
        started_at=log.get("startedAt"),
        step_count=len(steps),
        completed=sum(1 for s in steps if not s.get("skipped") and not s.get("dryRun")),
        skipped=sum(1 for s in steps if s.get("skipped")),
        dry_run=bool(log.get("dryRun")),
        duration_ms=duration,
    )


def log_files(name: str, logs_root: str | Path) -> List[Path]:
    """Saved logs for `name`, most recent first."""
    log_dir = Path(logs_root) / name
    if not log_dir.is_dir():
        return []
    return sorted((p for p in log_dir.iterdir() if p.suffix == ".json"), reverse=True)


def read_logs(name: str, logs_root: str | Path, last: int = 5) -> List[LogSummary]:
    return [_summarize(p) for p in log_files(name, logs_root)[: max(0, last)]]
