# rulegate/rules/__init__.py
"""
Ядро вычисления правил.

Состав:
  - types.py        → логика, правило/группа, результаты, параметры запроса
  - expression.py   → безопасный вычислитель выражений
  - providers.py    → функции для выражений
  - evaluator.py    → проверка правил группы
  - actions.py      → реестр обработчиков и диспетчер действий
  - handlers.py     → встроенные обработчики (log, set_context)
  - storage.py      → интерфейс хранилища групп
  - repositories.py → in-memory и SQL реализации
  - engine.py       → одна группа / несколько групп
"""
from .engine import GroupResults, RuleEngine
from .actions import (
    ActionFailedError,
    ActionHandler,
    ActionHandlerNotFound,
    ActionRegistry,
    BaseActionHandler,
    RuleActionHandler,
)
from .evaluator import RuleEvaluator
from .expression import EvaluationError, ExpressionEvaluator
from .storage import RuleGroupStorage
from .types import (
    ActionResult,
    EvaluationLogic,
    EvaluationOptions,
    EvaluationResult,
    MultiGroupEvaluationResult,
    Rule,
    RuleGroup,
    RuleResult,
)

__all__ = [
    "RuleEngine",
    "GroupResults",
    "ActionRegistry",
    "RuleActionHandler",
    "ActionHandler",
    "BaseActionHandler",
    "ActionHandlerNotFound",
    "ActionFailedError",
    "RuleEvaluator",
    "ExpressionEvaluator",
    "EvaluationError",
    "RuleGroupStorage",
    "ActionResult",
    "EvaluationLogic",
    "EvaluationOptions",
    "EvaluationResult",
    "MultiGroupEvaluationResult",
    "Rule",
    "RuleGroup",
    "RuleResult",
]
