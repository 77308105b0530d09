# rulegate/rules/evaluator.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from .expression import ExpressionEvaluator
from .providers import DefaultFunctionsProvider
from .types import Rule, RuleGroup, RuleResult, order_active_rules

log = logging.getLogger("rules.engine")


class RuleEvaluator:
    """
    Проверяет правила группы.
    Получает:
      - группу (снимок с активными правилами)
      - данные (dict[name -> value]) для выражений
    Возвращает: список RuleResult в порядке вычисления.
    """

    def __init__(self, expressions: Optional[ExpressionEvaluator] = None) -> None:
        self._expressions = expressions or ExpressionEvaluator([DefaultFunctionsProvider])

    # ------------------------------------------------------------------
    def evaluate_rules(self, group: RuleGroup, data: Mapping[str, Any]) -> List[RuleResult]:
        """
        Все активные правила по убыванию priority.
        FAIL_FAST: после первого проваленного правила дальше не идём,
        остальные не попадают в результат и их действия не выполняются.
        ALL/ANY: вычисляем всё, итог считает движок.
        """
        stop_on_failure = group.evaluation_logic.stops_on_failure
        results: List[RuleResult] = []

        for rule in order_active_rules(group.rules):
            result = self.evaluate_rule(rule, data)
            results.append(result)

            if stop_on_failure and not result.passed:
                log.debug(
                    "group %s: stopped at rule %s (fail_fast)",
                    group.name,
                    rule.name,
                )
                break

        return results

    # ------------------------------------------------------------------
    def evaluate_rule(self, rule: Rule, data: Mapping[str, Any]) -> RuleResult:
        """
        Проверка одного правила. Исключения наружу не выпускаем:
        ошибка выражения → passed=False и текст в error.
        """
        variables: Dict[str, Any] = dict(data or {})
        try:
            passed = bool(self._expressions.evaluate(rule.expression, variables))
            error = None
        except Exception as exc:  # noqa: BLE001
            passed = False
            error = str(exc) or type(exc).__name__
            log.debug("rule %s: expression error: %s", rule.name, error)

        return RuleResult.create(passed, rule, error)
