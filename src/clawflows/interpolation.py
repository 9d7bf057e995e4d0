# interpolation.py
from __future__ import annotations

import json
import re
from typing import Any, Mapping, Optional

from .expressions import ExpressionError, ExpressionEvaluator, evaluate
from .model import PendingResult

PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")


def json_default(value: Any) -> Any:
    """json.dumps hook for context values that are not plain JSON."""
    if isinstance(value, PendingResult):
        return value.to_json()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


def to_json(value: Any, **kwargs) -> str:
    return json.dumps(value, default=json_default, ensure_ascii=False, **kwargs)


def render_value(value: Any) -> str:
    """Text for a placeholder result: structured values as JSON, the rest via str()."""
    if value is None or isinstance(value, (dict, list, tuple, PendingResult)):
        try:
            return to_json(value)
        except (TypeError, ValueError):
            # non-string keys, circular data
            return str(value)
    return str(value)


def interpolate(template: Any, context: Mapping[str, Any], evaluator: Optional[ExpressionEvaluator] = None) -> Any:
    """
    Substitute `${expr}` placeholders in `template`.

    Strings get every placeholder replaced; lists and dicts are walked
    recursively (dict keys are left alone); anything else comes back as is.
    A placeholder whose expression fails stays in the output verbatim.
    """
    if isinstance(template, str):
        def _replace(match: re.Match) -> str:
            try:
                if evaluator is not None:
                    value = evaluator.evaluate(match.group(1), context)
                else:
                    value = evaluate(match.group(1), context)
            except ExpressionError:
                return match.group(0)
            return render_value(value)

        return PLACEHOLDER.sub(_replace, template)

    if isinstance(template, (list, tuple)):
        return [interpolate(item, context, evaluator) for item in template]

    if isinstance(template, dict):
        return {key: interpolate(value, context, evaluator) for key, value in template.items()}

    return template
