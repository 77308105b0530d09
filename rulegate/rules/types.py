# rulegate/rules/types.py
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union


# === 1. ЛОГИКА ВЫЧИСЛЕНИЯ =====================================================

class EvaluationLogic(Enum):
    """
    Как набор результатов (правил или групп) складывается в один bool.

    Используется и внутри группы (правила), и между группами.
    """
    ALL = "all"              # все должны пройти
    ANY = "any"              # достаточно одного
    FAIL_FAST = "fail_fast"  # как ALL, но останавливаемся на первом провале

    @classmethod
    def values(cls) -> List[str]:
        return [item.value for item in cls]

    @classmethod
    def options(cls) -> Dict[str, str]:
        """Подписи для UI/справки."""
        return {
            cls.ALL.value: "All rules must pass",
            cls.ANY.value: "Any rule must pass",
            cls.FAIL_FAST.value: "Fail as soon as any rule fails",
        }

    @classmethod
    def coerce(cls, value: Union[str, "EvaluationLogic", None]) -> "EvaluationLogic":
        """Принимает enum, строку ('all'/'ALL') или None (→ ALL)."""
        if value is None:
            return cls.ALL
        if isinstance(value, cls):
            return value
        raw = str(value).strip().lower()
        try:
            return cls(raw)
        except ValueError:
            raise ValueError(
                f"Unknown evaluation logic: {value!r} (expected one of {cls.values()})"
            ) from None

    def is_(self, other: Union[str, "EvaluationLogic"]) -> bool:
        if isinstance(other, EvaluationLogic):
            return self is other
        if isinstance(other, str):
            return self.value == other
        return False

    # --- алгоритм 1: сколько элементов вычислять ---------------------------
    @property
    def stops_on_failure(self) -> bool:
        """True → вычисление обрывается на первом проваленном элементе."""
        return _STOPS_ON_FAILURE[self]

    # --- алгоритм 2: как свернуть результаты в bool ------------------------
    def combine(self, outcomes: Iterable[bool]) -> bool:
        return _COMBINE[self](outcomes)


# у каждого варианта enum должна быть запись в обеих таблицах
_STOPS_ON_FAILURE = {
    EvaluationLogic.ALL: False,
    EvaluationLogic.ANY: False,
    EvaluationLogic.FAIL_FAST: True,
}

_COMBINE = {
    EvaluationLogic.ALL: all,
    EvaluationLogic.ANY: any,
    EvaluationLogic.FAIL_FAST: all,
}


# === 2. ПРАВИЛО И ГРУППА =====================================================

@dataclass(frozen=True)
class Rule:
    """
    Снимок одного правила.
    Не меняется во время прохода вычисления.
    """
    name: str
    expression: str
    priority: int = 0
    action_type: Optional[str] = None
    action_value: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None
    active: bool = True


@dataclass(frozen=True)
class RuleGroup:
    """
    Группа правил.
    rules: только активные, по убыванию priority (так их отдаёт хранилище).
    """
    name: str
    priority: int = 0
    evaluation_logic: EvaluationLogic = EvaluationLogic.ANY
    rules: Tuple[Rule, ...] = ()


def order_active_rules(rules: Iterable[Rule]) -> Tuple[Rule, ...]:
    """
    Отбрасывает неактивные правила и сортирует по priority DESC.
    sorted() стабильный → при равном priority сохраняется порядок вставки.
    """
    active = [r for r in rules if r.active]
    return tuple(sorted(active, key=lambda r: r.priority, reverse=True))


# === 3. РЕЗУЛЬТАТ ДЕЙСТВИЯ ===================================================

@dataclass(frozen=True)
class ActionResult:
    """Что вернул обработчик действия."""
    success: bool
    context: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @classmethod
    def ok(cls, context: Optional[Dict[str, Any]] = None) -> "ActionResult":
        return cls(True, dict(context or {}))

    @classmethod
    def failure(cls, error: str) -> "ActionResult":
        return cls(False, {}, error)


# === 4. РЕЗУЛЬТАТ ПРАВИЛА ====================================================

@dataclass(frozen=True)
class RuleResult:
    """
    Итог одного правила.
    error != None → passed всегда False.
    """
    rule: str
    passed: bool
    expression: str
    action_type: Optional[str] = None
    action_value: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None
    error: Optional[str] = None

    def __post_init__(self) -> None:
        if self.error is not None and self.passed:
            raise ValueError("RuleResult with an error cannot be passed")

    @classmethod
    def create(cls, passed: bool, rule: Rule, error: Optional[str] = None) -> "RuleResult":
        return cls(
            rule=rule.name,
            passed=passed,
            expression=rule.expression,
            action_type=rule.action_type,
            action_value=rule.action_value,
            error_message=rule.error_message,
            error=error,
        )

    def __getitem__(self, key: str) -> Any:
        try:
            return getattr(self, key)
        except AttributeError:
            raise KeyError(key) from None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# === 5. РЕЗУЛЬТАТ ГРУППЫ =====================================================

@dataclass(frozen=True)
class EvaluationResult:
    """
    Итог вычисления одной группы.

    error заполняется только для ошибок уровня движка (не та группа,
    нет группы, исключение при вычислении), тогда rules и context пустые.
    """
    passed: bool
    rules: Tuple[RuleResult, ...] = ()
    context: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @classmethod
    def create(
        cls,
        passed: bool,
        rules: Sequence[RuleResult],
        context: Optional[Dict[str, Any]] = None,
    ) -> "EvaluationResult":
        return cls(passed=passed, rules=tuple(rules), context=dict(context or {}))

    @classmethod
    def error_result(cls, error: str) -> "EvaluationResult":
        return cls(passed=False, error=error)

    # ------------------------------------------------------------------
    def failed_rules(self) -> List[RuleResult]:
        return [r for r in self.rules if not r.passed]

    def rules_with_exceptions(self) -> List[RuleResult]:
        return [r for r in self.rules if r.error]

    def format_failed_rules_messages(self) -> List[str]:
        messages: List[str] = []
        for r in self.failed_rules():
            if r.error:
                messages.append(f"Rule [{r.rule}] failed due to error: {r.error}")
            elif r.error_message:
                messages.append(f"Rule [{r.rule}] failed: {r.error_message}")
            else:
                messages.append(f"Rule [{r.rule}] failed, but no error message provided.")
        return messages

    def format_failed_rules_as_string(self, separator: str = "\n") -> str:
        return separator.join(self.format_failed_rules_messages())

    def extract_actions_from_result(self) -> List[Dict[str, Any]]:
        """Действия правил, которые прошли и у которых задан action_type."""
        return [
            {"action_type": r.action_type, "action_value": r.action_value}
            for r in self.rules
            if r.passed and r.action_type is not None
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "rules": [r.to_dict() for r in self.rules],
            "context": dict(self.context),
            "error": self.error,
        }


# === 6. РЕЗУЛЬТАТ НЕСКОЛЬКИХ ГРУПП ===========================================

@dataclass(frozen=True)
class MultiGroupEvaluationResult:
    """
    group_results: в порядке вычисления (может быть меньше запрошенных
    групп при ANY/FAIL_FAST). context: объединение контекстов прошедших групп.
    """
    passed: bool
    group_results: Dict[str, EvaluationResult] = field(default_factory=dict)
    context: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    def failed_groups(self) -> List[str]:
        return [name for name, res in self.group_results.items() if not res.passed]

    def has_failed_groups(self) -> bool:
        return bool(self.failed_groups())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "group_results": {
                name: res.to_dict() for name, res in self.group_results.items()
            },
            "context": dict(self.context),
            "error": self.error,
        }


# === 7. ПАРАМЕТРЫ ЗАПРОСА ====================================================

@dataclass(frozen=True)
class EvaluationOptions:
    """
    Запрос на вычисление.
    group_names: одна строка превращается в список из одного элемента.
    """
    group_names: List[str]
    data: Dict[str, Any] = field(default_factory=dict)
    logic: EvaluationLogic = EvaluationLogic.ALL
    sort_by_priority: bool = False

    def __post_init__(self) -> None:
        names = self.group_names
        if isinstance(names, str):
            names = [names]
        object.__setattr__(self, "group_names", list(names or []))
        object.__setattr__(self, "data", dict(self.data or {}))
        object.__setattr__(self, "logic", EvaluationLogic.coerce(self.logic))
        object.__setattr__(self, "sort_by_priority", bool(self.sort_by_priority))

    @classmethod
    def from_dict(cls, options: Dict[str, Any]) -> "EvaluationOptions":
        if "group_names" in options:
            names = options["group_names"]
        elif "groupNames" in options:
            names = options["groupNames"]
        else:
            raise ValueError("EvaluationOptions requires 'group_names'")

        sort_flag = options.get("sort_by_priority", options.get("sortByPriority", False))
        return cls(
            group_names=names,
            data=options.get("data") or {},
            logic=options.get("logic"),
            sort_by_priority=sort_flag,
        )
