# trace.py
from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

# record field -> key in the persisted JSON log
_JSON_KEYS = {"dry_run": "dryRun", "output_length": "outputLength"}


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class StepRecord:
    """
    What happened to one visited step.

    Only the fields relevant to the outcome are set:
      - skipped steps:    skipped, reason
      - capability calls: capability, method, args, dry_run
      - actions:          action + message / output_length / result / error
    """
    name: str
    skipped: bool = False
    reason: str | None = None
    capability: str | None = None
    method: str | None = None
    args: Any = None
    dry_run: bool = False
    action: str | None = None
    message: Any = None
    output_length: int | None = None
    result: Any = None
    error: str | None = None
    # evaluate results can legitimately be None; this tells "no result" apart
    has_result: bool = field(default=False, repr=False)

    @classmethod
    def skip(cls, name: str, reason: str) -> StepRecord:
        return cls(name=name, skipped=True, reason=reason)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields(self):
            if f.name == "has_result":
                continue
            value = getattr(self, f.name)
            if f.name == "result":
                if self.has_result:
                    out["result"] = value
                continue
            if value is None or value is False:
                continue
            out[_JSON_KEYS.get(f.name, f.name)] = value
        return out


@dataclass
class Trace:
    """Append-only record of one run."""
    automation: str
    dry_run: bool = False
    started_at: str = field(default_factory=utc_now)
    completed_at: Optional[str] = None
    steps: List[StepRecord] = field(default_factory=list)

    @property
    def finished(self) -> bool:
        return self.completed_at is not None

    def append(self, record: StepRecord) -> StepRecord:
        if self.finished:
            raise RuntimeError(f"Trace for '{self.automation}' is already finished")
        self.steps.append(record)
        return record

    def finish(self) -> None:
        if self.finished:
            raise RuntimeError(f"Trace for '{self.automation}' is already finished")
        self.completed_at = utc_now()

    def record(self, name: str) -> Optional[StepRecord]:
        """First record for step `name`, if it was visited."""
        for r in self.steps:
            if r.name == name:
                return r
        return None

    @property
    def skipped(self) -> List[StepRecord]:
        return [r for r in self.steps if r.skipped]

    @property
    def completed(self) -> List[StepRecord]:
        return [r for r in self.steps if not r.skipped and not r.dry_run]

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "automation": self.automation,
            "startedAt": self.started_at,
            "steps": [r.to_dict() for r in self.steps],
            "dryRun": self.dry_run,
        }
        if self.completed_at is not None:
            out["completedAt"] = self.completed_at
        return out
