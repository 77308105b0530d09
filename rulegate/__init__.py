# rulegate/__init__.py
"""
rulegate: группы правил-выражений, действия и контекст.

Быстрый старт без конфигов:

    from rulegate import RuleEngineContext, RuleGroup, Rule
    ctx = RuleEngineContext()
    ctx.storage.save_group(RuleGroup("g", rules=(Rule("r", "x > 1"),)))
    ctx.evaluate_group({"group_names": "g", "data": {"x": 2}}).passed   # True
"""
from rulegate.runtime import RuleEngineContext, build_context
from rulegate.rules.types import (
    EvaluationLogic,
    EvaluationOptions,
    EvaluationResult,
    MultiGroupEvaluationResult,
    Rule,
    RuleGroup,
)

__all__ = [
    "RuleEngineContext",
    "build_context",
    "EvaluationLogic",
    "EvaluationOptions",
    "EvaluationResult",
    "MultiGroupEvaluationResult",
    "Rule",
    "RuleGroup",
]
