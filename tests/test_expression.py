# tests/test_expression.py
from __future__ import annotations

import pytest

from rulegate.rules.expression import EvaluationError, ExpressionEvaluator
from rulegate.rules.providers import DefaultFunctionsProvider, StringFunctionsProvider


@pytest.fixture
def ev() -> ExpressionEvaluator:
    return ExpressionEvaluator([DefaultFunctionsProvider])


class TestEvaluate:
    @pytest.mark.parametrize(
        "expression, variables, expected",
        [
            ("x > 1 and y == 'a'", {"x": 2, "y": "a"}, True),
            ("not (x > 1)", {"x": 2}, False),
            ("x in [1, 2, 3]", {"x": 3}, True),
            ("user['age'] >= 18", {"user": {"age": 20}}, True),
            ("flag == true", {"flag": True}, True),
            ("v is null", {"v": None}, True),
            ("a if a > b else b", {"a": 1, "b": 5}, 5),
            ("count(items) == 2", {"items": [1, 2]}, True),
            ("total * 2 - 1", {"total": 3}, 5),
        ],
    )
    def test_values(self, ev, expression, variables, expected):
        assert ev.evaluate(expression, variables) == expected

    def test_variable_does_not_shadow_function(self, ev):
        variables = {"items": [1, 2], "count": 5, "max": 0, "date": "today"}
        assert ev.evaluate("count(items) == 2 and count > 0", variables) is True
        assert ev.evaluate("max(count, 7) + max", variables) == 7
        assert ev.evaluate("date('%Y', 0) + date", variables) == "1970today"

    def test_function_table_name_is_not_reachable(self, ev):
        with pytest.raises(EvaluationError):
            ev.evaluate("__fn__['count']([1])", {})

    def test_attribute_access(self, ev):
        class Order:
            total = 10

        assert ev.evaluate("order.total > 5", {"order": Order()}) is True


class TestErrors:
    def test_missing_variable_is_named(self, ev):
        with pytest.raises(EvaluationError, match='Variable "missing" is not valid.'):
            ev.evaluate("x > 1 and missing", {"x": 0})

    def test_missing_variable_even_when_short_circuited(self, ev):
        with pytest.raises(EvaluationError, match='"later"'):
            ev.evaluate("false and later", {})

    def test_unknown_function(self, ev):
        with pytest.raises(EvaluationError, match='The function "nope" does not exist.'):
            ev.evaluate("nope(1)", {})

    def test_syntax_error(self, ev):
        with pytest.raises(EvaluationError, match="Syntax error"):
            ev.evaluate("x >", {"x": 1})

    def test_empty(self, ev):
        with pytest.raises(EvaluationError):
            ev.evaluate("   ", {})

    @pytest.mark.parametrize(
        "expression",
        [
            "[i for i in x]",
            "(lambda: 1)()",
            "x.__class__",
            "__import__('os')",
        ],
    )
    def test_rejected_constructs(self, ev, expression):
        with pytest.raises(EvaluationError):
            ev.evaluate(expression, {"x": [1]})

    def test_runtime_error_message(self, ev):
        with pytest.raises(EvaluationError, match="division by zero"):
            ev.evaluate("x / 0", {"x": 1})

    def test_is_value_error(self, ev):
        with pytest.raises(ValueError):
            ev.evaluate("y", {})


class TestProviders:
    def test_last_registered_wins(self):
        class First:
            def get_functions(self):
                return {"f": lambda: 1}

        class Second:
            def get_functions(self):
                return {"f": lambda: 2}

        ev = ExpressionEvaluator([First(), Second()])
        assert ev.evaluate("f()", {}) == 2

    def test_registering_provider_invalidates_cache(self):
        ev = ExpressionEvaluator()
        with pytest.raises(EvaluationError):
            ev.evaluate("lowercase(x) == 'a'", {"x": "A"})
        ev.register_provider(StringFunctionsProvider)
        assert ev.evaluate("lowercase(x) == 'a'", {"x": "A"}) is True

    def test_provider_class_gets_evaluator(self, ev):
        assert ev.has_function("filter")

    def test_non_callable_rejected(self):
        class Bad:
            def get_functions(self):
                return {"x": 1}

        with pytest.raises(TypeError):
            ExpressionEvaluator([Bad()])

    def test_compile_cache_and_variable_order(self, ev):
        program = ev.compile("b > 1 and a < 2 and b != a")
        assert program.variables == ("b", "a")
        assert ev.compile("b > 1 and a < 2 and b != a") is program
