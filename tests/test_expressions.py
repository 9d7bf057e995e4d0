"""
Tests for the sandboxed expression evaluator.
"""

import pytest

from clawflows.expressions import (
    MAX_LOOP_ITERATIONS,
    ExpressionError,
    ExpressionEvaluator,
    evaluate,
    is_snippet,
)


class TestExpressions:
    """Single expressions."""

    def test_arithmetic(self):
        assert evaluate("40 + 2", {}) == 42

    def test_names_from_context(self):
        assert evaluate("count >= 3 and label == 'ok'", {"count": 5, "label": "ok"}) is True

    def test_dotted_access_into_mappings(self):
        assert evaluate("config.limit * 2", {"config": {"limit": 3}}) == 6

    def test_subscript_access(self):
        assert evaluate("items[1]['name']", {"items": [{"name": "a"}, {"name": "b"}]}) == "b"

    def test_literal_aliases(self):
        assert evaluate("true and not false", {}) is True
        assert evaluate("null", {}) is None

    def test_context_overrides_aliases(self):
        assert evaluate("true", {"true": "shadowed"}) == "shadowed"

    def test_safe_functions(self):
        assert evaluate("len(xs) + max(xs) + sum(xs)", {"xs": [1, 2, 3]}) == 3 + 3 + 6

    def test_compound_literals(self):
        assert evaluate("[x, {'k': x}]", {"x": 1}) == [1, {"k": 1}]

    def test_custom_function_table(self):
        evaluator = ExpressionEvaluator(functions={"double": lambda v: v * 2})
        assert evaluator.evaluate("double(4)", {}) == 8
        with pytest.raises(ExpressionError):
            evaluator.evaluate("len([1])", {})


class TestErrors:
    """Faults are raised as ExpressionError carrying the source text."""

    @pytest.mark.parametrize("text", ["1 / 0", "1 +", "undefined_name", "missing.attr", "xs[10]"])
    def test_faults(self, text):
        with pytest.raises(ExpressionError) as excinfo:
            evaluate(text, {"xs": [1]})
        assert excinfo.value.expression == text

    @pytest.mark.parametrize("text", ["", "   "])
    def test_empty(self, text):
        with pytest.raises(ExpressionError):
            evaluate(text, {})

    def test_private_attributes_are_refused(self):
        with pytest.raises(ExpressionError):
            evaluate("config.__class__", {"config": {}})

    def test_no_builtins_beyond_the_table(self):
        with pytest.raises(ExpressionError):
            evaluate("open('/etc/passwd')", {})


class TestSnippets:
    """Multi-statement snippets with a return value."""

    def test_detection(self):
        assert is_snippet("let x = 1")
        assert is_snippet("x = 1\nreturn x")
        assert not is_snippet("  x + 1  \n")

    def test_declaration_and_return(self):
        assert evaluate("let x = 20\nconst y = x + 1\nreturn x + y", {}) == 41

    def test_loop_and_augmented_assignment(self):
        snippet = """
let total = 0
for p in prices:
    if p < 0:
        continue
    total += p
return total
"""
        assert evaluate(snippet, {"prices": [1, -5, 2, 3]}) == 6

    def test_if_else(self):
        snippet = "if n > 10:\n    return 'big'\nelse:\n    return 'small'"
        assert evaluate(snippet, {"n": 11}) == "big"
        assert evaluate(snippet, {"n": 1}) == "small"

    def test_for_break_and_else(self):
        snippet = (
            "found = null\n"
            "for x in xs:\n"
            "    if x > 2:\n"
            "        found = x\n"
            "        break\n"
            "else:\n"
            "    found = -1\n"
            "return found"
        )
        assert evaluate(snippet, {"xs": [1, 3, 5]}) == 3
        assert evaluate(snippet, {"xs": [1]}) == -1

    def test_tuple_unpacking(self):
        assert evaluate("a, b = pair\nreturn b - a", {"pair": [2, 7]}) == 5

    def test_no_return_gives_none(self):
        assert evaluate("let x = 1\nx + 1", {}) is None

    def test_does_not_write_back_to_context(self):
        context = {"a": 1}
        assert evaluate("let a = 5\nreturn a", context) == 5
        assert context == {"a": 1}

    def test_method_calls_do_not_mutate_context(self):
        context = {"config": {"a": 1}, "xs": [1]}
        evaluate("config.update({'a': 99})", context)
        evaluate("xs.append(2)", context)
        evaluate("let c = config\nc.update({'b': 2})\nreturn c", context)

        assert context == {"config": {"a": 1}, "xs": [1]}

    def test_loop_over_non_iterable(self):
        with pytest.raises(ExpressionError, match="Cannot loop over int"):
            evaluate("for i in n:\n    pass", {"n": 5})

    def test_unsupported_statement(self):
        with pytest.raises(ExpressionError, match="Unsupported statement"):
            evaluate("import os\nreturn 1", {})

    def test_syntax_error(self):
        with pytest.raises(ExpressionError, match="Invalid syntax"):
            evaluate("let x = \nreturn x", {})

    def test_loop_limit(self):
        snippet = "n = 0\nfor x in xs:\n    n += 1\nreturn n"
        with pytest.raises(ExpressionError, match="Loop limit"):
            evaluate(snippet, {"xs": list(range(MAX_LOOP_ITERATIONS + 1))})
