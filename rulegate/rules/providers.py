# rulegate/rules/providers.py
"""
Провайдеры функций для выражений правил.

Провайдер отдаёт словарь {имя: callable}. Функции чистые, принимают
только позиционные аргументы. Подключаются через rule_engine.expression_providers.
"""
from __future__ import annotations

import math
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Protocol

if TYPE_CHECKING:
    from .expression import ExpressionEvaluator


class FunctionProvider(Protocol):
    def get_functions(self) -> Dict[str, Callable[..., Any]]:
        ...


# --------------------------------------------------------------------------- #
# Реализации функций
# --------------------------------------------------------------------------- #

def _strlen(value: Any) -> int:
    if value is None:
        return 0
    return len(str(value))


def _substr(value: Any, start: int, length: Optional[int] = None) -> str:
    text = "" if value is None else str(value)
    if length is None:
        return text[start:]
    if length < 0:
        # отрицательная длина: отрезаем столько символов с конца
        return text[start:length]
    if start < 0:
        start = max(len(text) + start, 0)
    return text[start:start + length]


def _trim(value: Any, chars: Optional[str] = None) -> str:
    return ("" if value is None else str(value)).strip(chars)


def _empty(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return value == 0
    if isinstance(value, str):
        return value in ("", "0")
    try:
        return len(value) == 0
    except TypeError:
        return False


def _strtotime(value: Any) -> int:
    """
    ISO-строка (или 'now') → unix-время в секундах.
    Время без зоны считаем UTC.
    """
    if isinstance(value, (int, float)):
        return int(value)
    raw = str(value).strip()
    if raw.lower() == "now":
        return int(time.time())
    dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def _date(fmt: str, ts: Optional[float] = None) -> str:
    moment = time.time() if ts is None else float(ts)
    return datetime.fromtimestamp(moment, tz=timezone.utc).strftime(fmt)


def _contains(haystack: Any, needle: Any) -> bool:
    if haystack is None:
        return False
    return needle in haystack


def _starts_with(value: Any, prefix: str) -> bool:
    return str(value).startswith(prefix)


def _ends_with(value: Any, suffix: str) -> bool:
    return str(value).endswith(suffix)


# --------------------------------------------------------------------------- #
# Провайдеры
# --------------------------------------------------------------------------- #

class DefaultFunctionsProvider:
    """
    Базовый набор: математика, строки, проверки на пустоту, даты.

    Если передан evaluator, добавляется filter(items, expr): выражение
    вычисляется для каждого элемента, элемент доступен как `p`.
    """

    def __init__(self, evaluator: Optional["ExpressionEvaluator"] = None) -> None:
        self._evaluator = evaluator

    def get_functions(self) -> Dict[str, Callable[..., Any]]:
        functions: Dict[str, Callable[..., Any]] = {
            "count": len,
            "pow": pow,
            "sqrt": math.sqrt,
            "floor": math.floor,
            "ceil": math.ceil,
            "round": round,
            "abs": abs,
            "min": min,
            "max": max,
            "strlen": _strlen,
            "substr": _substr,
            "trim": _trim,
            "lower": lambda value: str(value).lower(),
            "upper": lambda value: str(value).upper(),
            "contains": _contains,
            "starts_with": _starts_with,
            "ends_with": _ends_with,
            "is_null": lambda value: value is None,
            "empty": _empty,
            "strtotime": _strtotime,
            "date": _date,
        }
        if self._evaluator is not None:
            functions["filter"] = self._filter
        return functions

    def _filter(self, items: Any, expression: str) -> List[Any]:
        if not isinstance(items, (list, tuple)):
            return []
        try:
            return [
                item for item in items
                if self._evaluator.evaluate(expression, {"p": item})
            ]
        except ValueError:
            # битое выражение внутри filter → пустой список, как и для не-списка
            return []


class StringFunctionsProvider:
    """lowercase(x): строки в нижний регистр, остальное без изменений."""

    def get_functions(self) -> Dict[str, Callable[..., Any]]:
        return {"lowercase": self._lowercase}

    @staticmethod
    def _lowercase(value: Any) -> Any:
        if not isinstance(value, str):
            return value
        return value.lower()
