from .dsl import automation, call, evaluate, from_dict, gate, notify, template
from .runner import FlowError, load_automation, run_automation
from .capabilities import check_requirements, scan_capabilities
from .expressions import ExpressionError, ExpressionEvaluator
from .interpolation import interpolate
from .model import Automation, AutomationError, PendingResult, Step
from .trace import StepRecord, Trace

__all__ = [
    "automation", "call", "evaluate", "from_dict", "gate", "notify", "template",
    "FlowError", "load_automation", "run_automation",
    "check_requirements", "scan_capabilities",
    "ExpressionError", "ExpressionEvaluator", "interpolate",
    "Automation", "AutomationError", "PendingResult", "Step",
    "StepRecord", "Trace",
]
