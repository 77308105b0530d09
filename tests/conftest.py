# tests/conftest.py
from __future__ import annotations

from typing import Any, Dict, List, Mapping

import pytest

from rulegate.rules.actions import ActionRegistry, BaseActionHandler, RuleActionHandler
from rulegate.rules.engine import RuleEngine
from rulegate.rules.evaluator import RuleEvaluator
from rulegate.rules.repositories import InMemoryRuleGroupStorage
from rulegate.rules.types import ActionResult, EvaluationLogic, Rule, RuleGroup
from rulegate.runtime import set_rule_engine


class RecordingHandler(BaseActionHandler):
    """Пишет в контекст action_value и запоминает вызовы."""

    action_types = ("record",)

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []

    def handle(self, action_value: Mapping[str, Any], context: Mapping[str, Any]) -> ActionResult:
        self.calls.append({"value": dict(action_value), "context": dict(context)})
        return ActionResult.ok(dict(action_value))


class FailingHandler(BaseActionHandler):
    action_types = ("fail",)

    def handle(self, action_value, context) -> ActionResult:
        return ActionResult.failure("boom")


class RaisingHandler(BaseActionHandler):
    action_types = ("raise",)

    def handle(self, action_value, context) -> ActionResult:
        raise RuntimeError("handler exploded")


def make_group(
    name: str,
    *expressions: str,
    logic: EvaluationLogic = EvaluationLogic.ALL,
    priority: int = 0,
) -> RuleGroup:
    """Группа из выражений; priority правил убывает в порядке аргументов."""
    rules = tuple(
        Rule(name=f"{name}_r{i + 1}", expression=expr, priority=len(expressions) - i)
        for i, expr in enumerate(expressions)
    )
    return RuleGroup(name=name, priority=priority, evaluation_logic=logic, rules=rules)


@pytest.fixture
def storage() -> InMemoryRuleGroupStorage:
    return InMemoryRuleGroupStorage()


@pytest.fixture
def recorder() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def registry(recorder) -> ActionRegistry:
    reg = ActionRegistry()
    reg.register("record", recorder)
    reg.register("fail", FailingHandler())
    reg.register("raise", RaisingHandler())
    return reg


@pytest.fixture
def make_engine(storage, registry):
    def _make(throw_on_error: bool = False) -> RuleEngine:
        return RuleEngine(
            storage=storage,
            evaluator=RuleEvaluator(),
            action_handler=RuleActionHandler(registry, throw_on_error=throw_on_error),
        )
    return _make


@pytest.fixture
def engine(make_engine) -> RuleEngine:
    return make_engine()


@pytest.fixture(autouse=True)
def _reset_rule_engine():
    yield
    set_rule_engine(None)
