# src/clawflows/dsl.py
from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Optional

from .model import (
    ACTION_KINDS,
    Automation,
    AutomationError,
    CapabilityCall,
    Evaluate,
    Notify,
    Requirement,
    Step,
    Template,
)


# ---------------------------------------------------------------------
# Step helpers
# ---------------------------------------------------------------------

def call(
    name: str | None,
    capability: str,
    method: str | None = None,
    args: Any = None,
    *,
    capture: str | None = None,
    condition: str | None = None,
    on_false: str | None = None,
) -> Step:
    """Create a capability-call step."""
    body = CapabilityCall(name=capability, method=method, args=args if args is not None else {}, capture=capture)
    return Step(name=name, condition=condition, on_false=on_false, body=body)


def notify(
    name: str | None,
    message: str,
    *,
    attachments: Any = None,
    condition: str | None = None,
    on_false: str | None = None,
) -> Step:
    return Step(name=name, condition=condition, on_false=on_false, body=Notify(message=message, attachments=attachments))


def template(
    name: str | None,
    text: str,
    *,
    capture: str | None = None,
    condition: str | None = None,
    on_false: str | None = None,
) -> Step:
    return Step(name=name, condition=condition, on_false=on_false, body=Template(template=text, capture=capture))


def evaluate(
    name: str | None,
    expression: str,
    *,
    capture: str | None = None,
    condition: str | None = None,
    on_false: str | None = None,
) -> Step:
    return Step(name=name, condition=condition, on_false=on_false, body=Evaluate(expression=expression, capture=capture))


def gate(name: str | None, condition: str, on_false: str | None = None) -> Step:
    """A condition-only step (no body)."""
    return Step(name=name, condition=condition, on_false=on_false)


# ---------------------------------------------------------------------
# Automation helper
# ---------------------------------------------------------------------

def automation(
    name: str,
    *steps: Step,
    description: str | None = None,
    config: Optional[Dict[str, Any]] = None,
    requires: Optional[List[Any]] = None,
    trigger: Optional[Dict[str, Any]] = None,
) -> Automation:
    """
    Build an Automation from step helpers.

    Example:
        automation(
            "daily-digest",
            evaluate("count", "40 + 2", capture="x"),
            notify("send", "Found ${x} items"),
            requires=["web-search"],
        )
    """
    return Automation(
        name=name,
        steps=_label_steps(list(steps)),
        description=description,
        config=dict(config or {}),
        requires=[_requirement(r) for r in (requires or [])],
        trigger=dict(trigger or {}),
    )


def _label_steps(steps: List[Step]) -> List[Step]:
    # unnamed steps get a positional label
    return [s if s.name else replace(s, name=f"step-{i + 1}") for i, s in enumerate(steps)]


def _requirement(raw: Any) -> Requirement:
    if isinstance(raw, Requirement):
        return raw
    if isinstance(raw, str):
        return Requirement(capability=raw)
    if isinstance(raw, dict) and raw.get("capability"):
        meta = {k: v for k, v in raw.items() if k != "capability"}
        return Requirement(capability=str(raw["capability"]), meta=meta)
    raise AutomationError(f"Invalid requirement entry: {raw!r} (expected a name or a mapping with 'capability')")


# ---------------------------------------------------------------------
# Decoded (YAML/JSON) shape -> model
# ---------------------------------------------------------------------

def _optional_text(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return value if isinstance(value, str) else str(value)


def _step_from_dict(raw: Any, index: int) -> Step:
    if not isinstance(raw, dict):
        raise AutomationError(f"Step {index + 1} must be a mapping, got {type(raw).__name__}")

    name = _optional_text(raw.get("name")) or f"step-{index + 1}"
    condition = _optional_text(raw.get("condition"))
    on_false = _optional_text(raw.get("onFalse", raw.get("on_false")))

    cap = raw.get("capability")
    action = raw.get("action")

    if cap and action:
        raise AutomationError(
            f"Step '{name}' declares both capability '{cap}' and action '{action}'; split it into two steps"
        )

    body = None
    if cap:
        if isinstance(cap, dict):
            if not cap.get("name"):
                raise AutomationError(f"Step '{name}' capability mapping needs a 'name'")
            body = CapabilityCall(
                name=str(cap["name"]),
                method=_optional_text(cap.get("method", raw.get("method"))),
                args=cap.get("args", raw.get("args")) or {},
                capture=_optional_text(cap.get("capture", raw.get("capture"))),
            )
        else:
            body = CapabilityCall(
                name=str(cap),
                method=_optional_text(raw.get("method")),
                args=raw.get("args") or {},
                capture=_optional_text(raw.get("capture")),
            )
    elif action:
        if action not in ACTION_KINDS:
            raise AutomationError(
                f"Step '{name}' has unknown action '{action}'. Known actions: {', '.join(ACTION_KINDS)}"
            )
        if action == "notify":
            body = Notify(message=raw.get("message") or "", attachments=raw.get("attachments"))
        elif action == "template":
            body = Template(template=_optional_text(raw.get("template")) or "", capture=_optional_text(raw.get("capture")))
        else:
            body = Evaluate(expression=_optional_text(raw.get("expression")) or "", capture=_optional_text(raw.get("capture")))

    return Step(name=name, condition=condition, on_false=on_false, body=body)


_MODELLED_KEYS = ("name", "description", "config", "requires", "steps", "trigger")


def from_dict(data: Any, fallback_name: str = "automation") -> Automation:
    """
    Convert a decoded automation document into an Automation.

    Raises:
        AutomationError: If the document does not have the expected shape
    """
    if not isinstance(data, dict):
        raise AutomationError(f"Automation must be a mapping, got {type(data).__name__}")

    steps_raw = data.get("steps") or []
    if not isinstance(steps_raw, list):
        raise AutomationError("'steps' must be a list")

    config = data.get("config") or {}
    if not isinstance(config, dict):
        raise AutomationError("'config' must be a mapping")

    requires = data.get("requires") or []
    if not isinstance(requires, list):
        raise AutomationError("'requires' must be a list")

    trigger = data.get("trigger") or {}
    if not isinstance(trigger, dict):
        raise AutomationError("'trigger' must be a mapping")

    return Automation(
        name=_optional_text(data.get("name")) or fallback_name,
        steps=[_step_from_dict(s, i) for i, s in enumerate(steps_raw)],
        description=_optional_text(data.get("description")),
        config=config,
        requires=[_requirement(r) for r in requires],
        trigger=trigger,
        meta={k: v for k, v in data.items() if k not in _MODELLED_KEYS},
    )
