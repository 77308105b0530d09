# tests/test_types.py
from __future__ import annotations

import pytest

from rulegate.rules.types import (
    EvaluationLogic,
    EvaluationOptions,
    EvaluationResult,
    MultiGroupEvaluationResult,
    Rule,
    RuleResult,
    order_active_rules,
)


class TestEvaluationLogic:
    def test_values_and_options(self):
        assert EvaluationLogic.values() == ["all", "any", "fail_fast"]
        assert set(EvaluationLogic.options()) == {"all", "any", "fail_fast"}

    @pytest.mark.parametrize(
        "raw, expected",
        [
            (None, EvaluationLogic.ALL),
            ("any", EvaluationLogic.ANY),
            ("FAIL_FAST", EvaluationLogic.FAIL_FAST),
            (" All ", EvaluationLogic.ALL),
            (EvaluationLogic.ANY, EvaluationLogic.ANY),
        ],
    )
    def test_coerce(self, raw, expected):
        assert EvaluationLogic.coerce(raw) is expected

    def test_coerce_unknown(self):
        with pytest.raises(ValueError, match="Unknown evaluation logic"):
            EvaluationLogic.coerce("most")

    def test_is(self):
        assert EvaluationLogic.ANY.is_("any")
        assert EvaluationLogic.ANY.is_(EvaluationLogic.ANY)
        assert not EvaluationLogic.ANY.is_("all")
        assert not EvaluationLogic.ANY.is_(1)

    def test_combine(self):
        assert EvaluationLogic.ALL.combine([True, True]) is True
        assert EvaluationLogic.ALL.combine([True, False]) is False
        assert EvaluationLogic.ANY.combine([False, True]) is True
        assert EvaluationLogic.ANY.combine([False, False]) is False
        assert EvaluationLogic.FAIL_FAST.combine([True, False]) is False

    def test_only_fail_fast_stops(self):
        assert EvaluationLogic.FAIL_FAST.stops_on_failure
        assert not EvaluationLogic.ALL.stops_on_failure
        assert not EvaluationLogic.ANY.stops_on_failure

    def test_every_variant_has_both_algorithms(self):
        for logic in EvaluationLogic:
            logic.combine([True])
            assert isinstance(logic.stops_on_failure, bool)


def test_order_active_rules_drops_inactive_and_keeps_ties_stable():
    rules = [
        Rule("a", "x", priority=1),
        Rule("b", "x", priority=5),
        Rule("c", "x", priority=5, active=False),
        Rule("d", "x", priority=5),
        Rule("e", "x", priority=1),
    ]
    assert [r.name for r in order_active_rules(rules)] == ["b", "d", "a", "e"]


class TestRuleResult:
    def test_create_echoes_rule(self):
        rule = Rule(
            "r", "x > 1",
            action_type="log",
            action_value={"message": "m"},
            error_message="too small",
        )
        res = RuleResult.create(False, rule)
        assert res.rule == "r"
        assert res.expression == "x > 1"
        assert res.action_type == "log"
        assert res.action_value == {"message": "m"}
        assert res.error_message == "too small"
        assert res.error is None
        assert res["passed"] is False

    def test_error_implies_failed(self):
        with pytest.raises(ValueError):
            RuleResult(rule="r", passed=True, expression="x", error="bad")

    def test_unknown_key(self):
        res = RuleResult.create(True, Rule("r", "x"))
        with pytest.raises(KeyError):
            res["nope"]


class TestEvaluationResult:
    @pytest.fixture
    def result(self):
        return EvaluationResult.create(
            False,
            [
                RuleResult(rule="ok", passed=True, expression="1", action_type="log",
                           action_value={"message": "hi"}),
                RuleResult(rule="err", passed=False, expression="y", error="boom"),
                RuleResult(rule="msg", passed=False, expression="z", error_message="z is off"),
                RuleResult(rule="bare", passed=False, expression="w"),
                RuleResult(rule="quiet", passed=True, expression="2"),
            ],
            {"k": 1},
        )

    def test_failed_rules(self, result):
        assert [r.rule for r in result.failed_rules()] == ["err", "msg", "bare"]
        assert [r.rule for r in result.rules_with_exceptions()] == ["err"]

    def test_messages(self, result):
        assert result.format_failed_rules_messages() == [
            "Rule [err] failed due to error: boom",
            "Rule [msg] failed: z is off",
            "Rule [bare] failed, but no error message provided.",
        ]
        assert result.format_failed_rules_as_string(" | ").count(" | ") == 2

    def test_extract_actions(self, result):
        assert result.extract_actions_from_result() == [
            {"action_type": "log", "action_value": {"message": "hi"}},
        ]

    def test_error_result(self):
        res = EvaluationResult.error_result("nope")
        assert res.passed is False
        assert res.rules == ()
        assert res.context == {}
        assert res.to_dict()["error"] == "nope"


def test_multi_group_failed_groups():
    res = MultiGroupEvaluationResult(
        passed=False,
        group_results={
            "a": EvaluationResult.create(True, []),
            "b": EvaluationResult.error_result("x"),
        },
    )
    assert res.failed_groups() == ["b"]
    assert res.has_failed_groups()
    assert list(res.to_dict()["group_results"]) == ["a", "b"]


class TestEvaluationOptions:
    def test_single_name_becomes_list(self):
        opts = EvaluationOptions(group_names="checkout")
        assert opts.group_names == ["checkout"]
        assert opts.logic is EvaluationLogic.ALL
        assert opts.sort_by_priority is False
        assert opts.data == {}

    def test_from_dict_camel_case(self):
        opts = EvaluationOptions.from_dict(
            {"groupNames": ["a", "b"], "data": {"x": 1}, "logic": "any", "sortByPriority": True}
        )
        assert opts.group_names == ["a", "b"]
        assert opts.data == {"x": 1}
        assert opts.logic is EvaluationLogic.ANY
        assert opts.sort_by_priority is True

    def test_from_dict_requires_names(self):
        with pytest.raises(ValueError):
            EvaluationOptions.from_dict({"data": {}})

    def test_data_is_copied(self):
        data = {"x": 1}
        opts = EvaluationOptions(group_names="g", data=data)
        data["x"] = 2
        assert opts.data == {"x": 1}
