# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


class AutomationError(ValueError):
    """Raised when an automation definition cannot be turned into a model."""


# ---------------------------------------------------------------------
# Step bodies (a step carries at most one of these)
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class CapabilityCall:
    """Invoke `method` on whichever provider offers capability `name`."""
    name: str
    method: str | None = None
    args: Any = field(default_factory=dict)
    capture: str | None = None


@dataclass(frozen=True)
class Notify:
    message: str = ""
    attachments: Any = None

    kind = "notify"


@dataclass(frozen=True)
class Template:
    template: str = ""
    capture: str | None = None

    kind = "template"


@dataclass(frozen=True)
class Evaluate:
    expression: str = ""
    capture: str | None = None

    kind = "evaluate"


Action = Union[Notify, Template, Evaluate]
StepBody = Union[CapabilityCall, Notify, Template, Evaluate]

ACTION_KINDS = ("notify", "template", "evaluate")


# ---------------------------------------------------------------------
# Steps + automation
# ---------------------------------------------------------------------

EXIT = "exit"
SKIP_TO_PREFIX = "skip-to:"


@dataclass(frozen=True)
class Step:
    """
    One unit of an automation.

    `condition` gates the body. When it evaluates false, `on_false` decides
    what happens next: "exit", "skip-to:<step name>", or None (skip just
    this step). `name` is None only until automation() labels the step.
    """
    name: str | None
    condition: str | None = None
    on_false: str | None = None
    body: Optional[StepBody] = None

    @property
    def capability(self) -> Optional[CapabilityCall]:
        return self.body if isinstance(self.body, CapabilityCall) else None

    @property
    def action(self) -> Optional[Action]:
        if self.body is None or isinstance(self.body, CapabilityCall):
            return None
        return self.body

    @property
    def skip_target(self) -> str | None:
        if self.on_false and self.on_false.startswith(SKIP_TO_PREFIX):
            return self.on_false[len(SKIP_TO_PREFIX):]
        return None


@dataclass(frozen=True)
class Requirement:
    capability: str
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Automation:
    """
    A parsed automation definition.

    `config` holds raw entries: either a literal default or a mapping with a
    `default` key. Use config_defaults() for the resolved values.
    """
    name: str
    steps: List[Step]
    description: str | None = None
    config: Dict[str, Any] = field(default_factory=dict)
    requires: List[Requirement] = field(default_factory=list)
    trigger: Dict[str, Any] = field(default_factory=dict)
    # unmodelled top-level keys (author, version, tags, ...)
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def schedule(self) -> str | None:
        return (self.trigger or {}).get("schedule")

    @property
    def required_capabilities(self) -> list[str]:
        return [r.capability for r in self.requires]

    def config_defaults(self) -> Dict[str, Any]:
        defaults: Dict[str, Any] = {}
        for key, value in self.config.items():
            if isinstance(value, dict) and "default" in value:
                defaults[key] = value["default"]
            else:
                defaults[key] = value
        return defaults

    def index_of(self, step_name: str) -> int | None:
        """First index of a step called `step_name` across the whole list."""
        for i, s in enumerate(self.steps):
            if s.name == step_name:
                return i
        return None


# ---------------------------------------------------------------------
# Context values
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class PendingResult:
    """
    Stands in for the result of a live capability call.

    The engine only prints instructions; whoever executes them produces the
    real value, so later steps see this placeholder instead.
    """
    description: str

    def to_json(self) -> Dict[str, str]:
        return {"_placeholder": self.description}
