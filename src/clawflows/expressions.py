# expressions.py
"""
Sandboxed expression evaluation for step conditions, evaluate actions and
`${...}` placeholders.

Expressions use Python expression syntax and run inside simpleeval, so only
arithmetic, comparisons, boolean logic, literals, subscripts, member access
and a fixed set of functions are available. Mapping members can be reached
with dotted access (`config.limit` == `config["limit"]`).

A multi-statement snippet (text spanning several lines, or starting with a
`let`/`const`/`var` declaration) runs as a small block whose `return` value
is the result:

    let total = sum(prices)
    if total > config.budget:
        return "over"
    return "ok"
"""
from __future__ import annotations

import ast
import copy
import re
import textwrap
from typing import Any, Dict, List, Mapping, Optional

from simpleeval import EvalWithCompoundTypes

SAFE_FUNCTIONS: Dict[str, Any] = {
    "abs": abs,
    "all": all,
    "any": any,
    "bool": bool,
    "dict": dict,
    "float": float,
    "int": int,
    "len": len,
    "list": list,
    "max": max,
    "min": min,
    "round": round,
    "sorted": sorted,
    "str": str,
    "sum": sum,
}

# JSON/YAML spellings people reach for inside automation files
LITERAL_ALIASES: Dict[str, Any] = {"true": True, "false": False, "null": None}

MAX_LOOP_ITERATIONS = 10_000

_DECLARATION = re.compile(r"^(\s*)(?:let|const|var)\s+", re.MULTILINE)
_SNIPPET_FN = "__snippet__"


class ExpressionError(Exception):
    """Raised when an expression cannot be parsed or fails while evaluating."""

    def __init__(self, message: str, expression: str = ""):
        super().__init__(message)
        self.expression = expression


class _MappingEval(EvalWithCompoundTypes):
    """simpleeval that resolves `a.b` as a key lookup when `a` is a dict holding `b`."""

    def _eval_attribute(self, node):
        if not node.attr.startswith("_"):
            owner = self._eval(node.value)
            if isinstance(owner, dict) and node.attr in owner:
                return owner[node.attr]
        return super()._eval_attribute(node)


class _Return(Exception):
    def __init__(self, value: Any):
        self.value = value


class _Break(Exception):
    pass


class _Continue(Exception):
    pass


def is_snippet(text: str) -> bool:
    stripped = text.strip()
    return "\n" in stripped or bool(_DECLARATION.match(stripped))


class ExpressionEvaluator:
    """
    Evaluates expressions and snippets against a binding context.

    Every call works on a fresh evaluator over a deep copy of the context,
    so nothing leaks between calls and neither snippets nor method calls
    write back to the caller's values.
    """

    def __init__(self, functions: Optional[Mapping[str, Any]] = None):
        self.functions = dict(SAFE_FUNCTIONS if functions is None else functions)

    def evaluate(self, text: str, context: Mapping[str, Any]) -> Any:
        """
        Args:
            text: A single expression or a multi-statement snippet
            context: Variable bindings; every key is addressable by name

        Returns:
            The expression value, or the snippet's `return` value

        Raises:
            ExpressionError: On a syntax error or a runtime fault
        """
        if not isinstance(text, str) or not text.strip():
            raise ExpressionError("Empty expression", str(text))

        scope: Dict[str, Any] = dict(LITERAL_ALIASES)
        # method calls such as config.update() must not reach the caller's values
        scope.update(copy.deepcopy(dict(context)))
        ev = _MappingEval(functions=self.functions, names=scope)

        if is_snippet(text):
            return self._run_snippet(text, ev, scope)
        return self._eval(ev, text.strip(), text)

    # -----------------------------------------------------------------
    # single expressions
    # -----------------------------------------------------------------

    @staticmethod
    def _eval(ev: _MappingEval, source: str, original: str) -> Any:
        try:
            return ev.eval(source)
        except ExpressionError:
            raise
        except SyntaxError as e:
            raise ExpressionError(f"Invalid syntax: {e.msg}", original) from e
        except Exception as e:
            raise ExpressionError(f"{type(e).__name__}: {e}", original) from e

    def _eval_node(self, ev: _MappingEval, node: ast.AST, original: str) -> Any:
        return self._eval(ev, ast.unparse(node), original)

    # -----------------------------------------------------------------
    # snippets
    # -----------------------------------------------------------------

    def _run_snippet(self, text: str, ev: _MappingEval, scope: Dict[str, Any]) -> Any:
        body = _DECLARATION.sub(r"\1", textwrap.dedent(text).strip("\n"))
        source = f"def {_SNIPPET_FN}():\n" + textwrap.indent(body, "    ")
        try:
            tree = ast.parse(source)
        except SyntaxError as e:
            raise ExpressionError(f"Invalid syntax: {e.msg}", text) from e

        statements = tree.body[0].body
        budget = [MAX_LOOP_ITERATIONS]
        try:
            self._exec_block(statements, ev, scope, text, budget)
        except _Return as ret:
            return ret.value
        except (_Break, _Continue):
            raise ExpressionError("'break'/'continue' outside a loop", text)
        return None

    def _exec_block(self, statements: List[ast.stmt], ev, scope, text, budget) -> None:
        for stmt in statements:
            self._exec(stmt, ev, scope, text, budget)

    def _assign(self, target: ast.AST, value: Any, scope: Dict[str, Any], text: str) -> None:
        if isinstance(target, ast.Name):
            scope[target.id] = value
            return
        if isinstance(target, (ast.Tuple, ast.List)):
            try:
                values = list(value)
            except TypeError as e:
                raise ExpressionError(f"Cannot unpack {type(value).__name__}", text) from e
            if len(values) != len(target.elts):
                raise ExpressionError(
                    f"Cannot unpack {len(values)} values into {len(target.elts)} names", text
                )
            for elt, item in zip(target.elts, values):
                self._assign(elt, item, scope, text)
            return
        raise ExpressionError(f"Can only assign to names, not {type(target).__name__}", text)

    def _exec(self, stmt: ast.stmt, ev, scope, text, budget) -> None:
        if isinstance(stmt, ast.Return):
            value = self._eval_node(ev, stmt.value, text) if stmt.value is not None else None
            raise _Return(value)

        if isinstance(stmt, ast.Assign):
            value = self._eval_node(ev, stmt.value, text)
            for target in stmt.targets:
                self._assign(target, value, scope, text)
            return

        if isinstance(stmt, ast.AnnAssign):
            if stmt.value is not None:
                self._assign(stmt.target, self._eval_node(ev, stmt.value, text), scope, text)
            return

        if isinstance(stmt, ast.AugAssign):
            if not isinstance(stmt.target, ast.Name):
                raise ExpressionError("Augmented assignment needs a plain name", text)
            combined = ast.BinOp(left=ast.Name(id=stmt.target.id, ctx=ast.Load()), op=stmt.op, right=stmt.value)
            scope[stmt.target.id] = self._eval_node(ev, combined, text)
            return

        if isinstance(stmt, ast.If):
            branch = stmt.body if self._eval_node(ev, stmt.test, text) else stmt.orelse
            self._exec_block(branch, ev, scope, text, budget)
            return

        if isinstance(stmt, ast.For):
            iterable = self._eval_node(ev, stmt.iter, text)
            try:
                items = iter(iterable)
            except TypeError as e:
                raise ExpressionError(f"Cannot loop over {type(iterable).__name__}", text) from e
            for item in items:
                budget[0] -= 1
                if budget[0] < 0:
                    raise ExpressionError(f"Loop limit of {MAX_LOOP_ITERATIONS} iterations exceeded", text)
                self._assign(stmt.target, item, scope, text)
                try:
                    self._exec_block(stmt.body, ev, scope, text, budget)
                except _Continue:
                    continue
                except _Break:
                    break
            else:
                self._exec_block(stmt.orelse, ev, scope, text, budget)
            return

        if isinstance(stmt, ast.Expr):
            self._eval_node(ev, stmt.value, text)
            return

        if isinstance(stmt, ast.Pass):
            return
        if isinstance(stmt, ast.Break):
            raise _Break()
        if isinstance(stmt, ast.Continue):
            raise _Continue()

        raise ExpressionError(f"Unsupported statement in snippet: {type(stmt).__name__}", text)


_default_evaluator = ExpressionEvaluator()


def evaluate(text: str, context: Mapping[str, Any]) -> Any:
    """Evaluate with the default evaluator. See ExpressionEvaluator.evaluate."""
    return _default_evaluator.evaluate(text, context)
