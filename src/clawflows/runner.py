# runner.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .capabilities import CapabilityIndex, check_requirements, load_method_instructions
from .dsl import from_dict
from .expressions import ExpressionError, ExpressionEvaluator
from .interpolation import interpolate, to_json
from .model import EXIT, Automation, AutomationError, CapabilityCall, Evaluate, Notify, PendingResult, Step, Template
from .trace import StepRecord, Trace
from .ui.console import Console, get_console


# ----------------------------------------------------------------------
# Errors
# ----------------------------------------------------------------------

@dataclass(eq=False)
class FlowError(Exception):
    """
    Fatal run error. Carries enough context for:
      - clean CLI output
      - the partial trace recorded before the abort
    """
    kind: str            # "missing_requirement" | "unresolved_capability"
    automation: str
    step: str | None
    message: str
    details: dict = field(default_factory=dict)
    trace: Optional[Trace] = field(default=None, repr=False)

    def __str__(self) -> str:
        lines = [f"{self.kind}: {self.message}", f"automation={self.automation}"]
        if self.step:
            lines.append(f"step={self.step}")
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)


# ----------------------------------------------------------------------
# Automation loading (local YAML file)
# ----------------------------------------------------------------------

YAML_SUFFIXES = (".yaml", ".yml")


def resolve_automation_path(name: str, automations_dir: str | Path) -> Path:
    """
    Turn a name or path into an automation file path.

    A name ending in .yaml/.yml is used as a path; otherwise
    <dir>/<name>.yaml is used unless only <dir>/<name>.yml exists.
    """
    if name.endswith(YAML_SUFFIXES):
        return Path(name)
    base = Path(automations_dir)
    candidate = base / f"{name}.yaml"
    alternative = base / f"{name}.yml"
    if not candidate.exists() and alternative.exists():
        return alternative
    return candidate


def load_automation(path: str | Path) -> Automation:
    """
    Load an automation from a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist
        AutomationError: If the YAML is invalid or has the wrong shape
    """
    auto_path = Path(path).expanduser()
    if not auto_path.exists():
        raise FileNotFoundError(f"Automation not found: {auto_path}")

    try:
        data = yaml.safe_load(auto_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise AutomationError(f"Invalid YAML in {auto_path}: {e}") from e

    fallback = auto_path.name
    for suffix in YAML_SUFFIXES:
        if fallback.endswith(suffix):
            fallback = fallback[: -len(suffix)]
    return from_dict(data, fallback_name=fallback)


# ----------------------------------------------------------------------
# Execution primitives
# ----------------------------------------------------------------------

class _Run:
    """State for a single run: the context, the trace and where output goes."""

    def __init__(
        self,
        automation: Automation,
        index: CapabilityIndex,
        dry_run: bool,
        console: Console,
        evaluator: ExpressionEvaluator,
    ):
        self.automation = automation
        self.index = index
        self.dry_run = dry_run
        self.console = console
        self.evaluator = evaluator
        self.context: Dict[str, Any] = {"config": automation.config_defaults()}
        self.trace = Trace(automation=automation.name, dry_run=dry_run)

    def interpolate(self, template: Any) -> Any:
        return interpolate(template, self.context, self.evaluator)

    def condition_met(self, step: Step) -> bool:
        try:
            return bool(self.evaluator.evaluate(step.condition, self.context))
        except ExpressionError as e:
            self.console.print_step_error(f'Error evaluating condition "{step.condition}": {e}')
            return False

    # -- capability calls ------------------------------------------------

    def call_capability(self, step: Step, call: CapabilityCall) -> None:
        provider = self.index.get(call.name)
        if provider is None:
            self.console.print_step_error(f"No provider for capability: {call.name}")
            raise FlowError(
                kind="unresolved_capability",
                automation=self.automation.name,
                step=step.name,
                message=f"No provider for capability: {call.name}",
                details={"capability": call.name},
                trace=self.trace,
            )

        args = self.interpolate(call.args)
        self.console.print_capability(call.name, call.method, provider.provider_id)

        if self.dry_run:
            self.console.print_dry_run(args)
            self.trace.append(StepRecord(
                name=step.name, capability=call.name, method=call.method, args=args, dry_run=True,
            ))
            return

        instructions = load_method_instructions(provider, call.method)
        if instructions is not None:
            self.console.print_instructions(instructions, args)
        else:
            self.console.print_generic_instructions(provider.provider_id, call.name, call.method, args)

        # the operator produces the real value; later steps see a placeholder
        if call.capture:
            self.console.print_capture(call.capture, pending=True)
            self.context[call.capture] = PendingResult(f"Result of {call.name}.{call.method}")

        self.trace.append(StepRecord(name=step.name, capability=call.name, method=call.method, args=args))

    # -- built-in actions ------------------------------------------------

    def notify(self, step: Step, action: Notify) -> None:
        message = self.interpolate(action.message)
        attachments = self.interpolate(action.attachments) if action.attachments is not None else None
        self.console.print_message(message, attachments, dry_run=self.dry_run)
        self.trace.append(StepRecord(name=step.name, action=action.kind, message=message))

    def template(self, step: Step, action: Template) -> None:
        rendered = self.interpolate(action.template)
        if not isinstance(rendered, str):
            rendered = to_json(rendered)
        self.console.print_template_rendered(len(rendered))
        if action.capture:
            self.context[action.capture] = rendered
            self.console.print_capture(action.capture)
        self.trace.append(StepRecord(name=step.name, action=action.kind, output_length=len(rendered)))

    def evaluate(self, step: Step, action: Evaluate) -> None:
        try:
            result = self.evaluator.evaluate(action.expression, self.context)
        except ExpressionError as e:
            self.console.print_step_error(f"Error evaluating: {e}")
            self.trace.append(StepRecord(name=step.name, action=action.kind, error=str(e)))
            return

        self.console.print_evaluated(result)
        if action.capture:
            self.context[action.capture] = result
            self.console.print_capture(action.capture)
        self.trace.append(StepRecord(name=step.name, action=action.kind, result=result, has_result=True))

    def run_body(self, step: Step) -> None:
        body = step.body
        if isinstance(body, CapabilityCall):
            self.call_capability(step, body)
            return
        if body is None:
            # condition-only step that passed
            self.trace.append(StepRecord(name=step.name))
            return

        self.console.print_action(body.kind)
        if isinstance(body, Notify):
            self.notify(step, body)
        elif isinstance(body, Template):
            self.template(step, body)
        else:
            self.evaluate(step, body)


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def run_automation(
    automation: Automation,
    index: CapabilityIndex,
    *,
    dry_run: bool = False,
    console: Console | None = None,
    evaluator: ExpressionEvaluator | None = None,
) -> Trace:
    """
    Execute an automation's steps in order and return the finished trace.

    Steps run one at a time against a shared context seeded with
    `config` (the resolved config defaults). A false condition skips the
    step, exits the run ("exit"), or jumps forward ("skip-to:<name>").

    Raises:
        FlowError: kind="missing_requirement" before any step when a
            required capability has no provider; kind="unresolved_capability"
            when a step's capability has no provider. The partial trace is
            attached to the error.
    """
    console = console or get_console()
    run = _Run(automation, index, dry_run, console, evaluator or ExpressionEvaluator())

    check = check_requirements(automation.required_capabilities, index)
    if not check.ok:
        missing = sorted(check.missing)
        raise FlowError(
            kind="missing_requirement",
            automation=automation.name,
            step=None,
            message=f"Missing capability: {', '.join(missing)}",
            details={"missing": missing},
            trace=run.trace,
        )

    steps = automation.steps
    total = len(steps)
    i = 0
    while i < total:
        step = steps[i]
        console.print_step(i, total, step.name)

        if step.condition is not None and not run.condition_met(step):
            console.print_condition_not_met(step.condition)

            if step.on_false == EXIT:
                console.print_exit()
                run.trace.append(StepRecord.skip(step.name, "condition not met, exit"))
                break

            target = step.skip_target
            if target is not None:
                target_index = automation.index_of(target)
                if target_index is not None and target_index > i:
                    console.print_skip_to(target)
                    run.trace.append(StepRecord.skip(step.name, f"skip-to {target}"))
                    console.print_info()
                    i = target_index
                    continue

            run.trace.append(StepRecord.skip(step.name, "condition not met"))
            console.print_info()
            i += 1
            continue

        run.run_body(step)
        console.print_info()
        i += 1

    run.trace.finish()
    console.print_done()
    return run.trace
