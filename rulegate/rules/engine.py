# rulegate/rules/engine.py
from __future__ import annotations

import logging
from typing import Any, Dict, List

from .actions import RuleActionHandler
from .evaluator import RuleEvaluator
from .storage import RuleGroupStorage
from .types import (
    EvaluationLogic,
    EvaluationOptions,
    EvaluationResult,
    MultiGroupEvaluationResult,
    RuleGroup,
    RuleResult,
)

log = logging.getLogger("rules.engine")

GROUP_COUNT_ERROR = "evaluateGroup expects exactly one groupName in options."


# ------------------------------------------------------------------ #
# Накопитель результатов нескольких групп
# ------------------------------------------------------------------ #

class GroupResults:
    """
    Результаты групп в порядке вычисления + общий контекст.
    Контекст группы вливается в общий только если группа прошла.
    """

    def __init__(self) -> None:
        self._results: Dict[str, EvaluationResult] = {}
        self._context: Dict[str, Any] = {}

    def add_result(self, group_name: str, result: EvaluationResult) -> None:
        self._results[group_name] = result
        if result.passed:
            self._context.update(result.context)

    def __len__(self) -> int:
        return len(self._results)

    @property
    def context(self) -> Dict[str, Any]:
        return dict(self._context)

    def fail_fast(self, group_name: str) -> MultiGroupEvaluationResult:
        return MultiGroupEvaluationResult(
            passed=False,
            group_results=dict(self._results),
            context=dict(self._context),
            error=f"Rule group '{group_name}' failed.",
        )

    def pass_any(self) -> MultiGroupEvaluationResult:
        return MultiGroupEvaluationResult(
            passed=True,
            group_results=dict(self._results),
            context=dict(self._context),
        )

    def to_multi_group_result(self, logic: EvaluationLogic) -> MultiGroupEvaluationResult:
        # пустой набор: all([]) is True, для ANY отдельно
        outcomes = [r.passed for r in self._results.values()]
        passed = logic.combine(outcomes) if outcomes else True
        return MultiGroupEvaluationResult(
            passed=passed,
            group_results=dict(self._results),
            context=dict(self._context),
        )


# ------------------------------------------------------------------ #
# Движок
# ------------------------------------------------------------------ #

class RuleEngine:
    """
    Вычисление групп правил:
      - берёт группу из хранилища (снимок с активными правилами)
      - прогоняет правила через RuleEvaluator
      - для прошедших правил с action_type вызывает действия по порядку,
        контекст передаётся от действия к действию
      - сворачивает результаты по evaluation_logic группы

    Наружу исключения не выходят: любые проблемы → результат с error.
    """

    def __init__(
        self,
        *,
        storage: RuleGroupStorage,
        evaluator: RuleEvaluator,
        action_handler: RuleActionHandler,
    ) -> None:
        self._storage = storage
        self._evaluator = evaluator
        self._action_handler = action_handler

    @property
    def storage(self) -> RuleGroupStorage:
        return self._storage

    # ------------------------------------------------------------------ #
    # ОДНА ГРУППА
    # ------------------------------------------------------------------ #
    def evaluate_group(self, options: EvaluationOptions) -> EvaluationResult:
        if len(options.group_names) != 1:
            return EvaluationResult.error_result(GROUP_COUNT_ERROR)

        group_name = options.group_names[0]
        group = self._storage.find_group_by_name(group_name)
        if group is None:
            return EvaluationResult.error_result(f"Rule group '{group_name}' not found.")

        try:
            return self._evaluate_loaded_group(group, options.data)
        except Exception as exc:  # noqa: BLE001
            log.exception("group %s: evaluation failed", group_name)
            return EvaluationResult.error_result(str(exc) or type(exc).__name__)

    def _evaluate_loaded_group(self, group: RuleGroup, data: Dict[str, Any]) -> EvaluationResult:
        rule_results = self._evaluator.evaluate_rules(group, data)
        context = self._dispatch_actions(rule_results)
        passed = group.evaluation_logic.combine(r.passed for r in rule_results)

        log.debug(
            "group %s (%s): passed=%s, rules=%d, failed=%d",
            group.name,
            group.evaluation_logic.value,
            passed,
            len(rule_results),
            sum(1 for r in rule_results if not r.passed),
        )
        return EvaluationResult.create(passed, rule_results, context)

    def _dispatch_actions(self, rule_results: List[RuleResult]) -> Dict[str, Any]:
        context: Dict[str, Any] = {}
        for result in rule_results:
            if not result.passed or result.action_type is None:
                continue
            context = self._action_handler.handle(
                result.action_type,
                result.action_value,
                context,
            )
        return context

    # ------------------------------------------------------------------ #
    # НЕСКОЛЬКО ГРУПП
    # ------------------------------------------------------------------ #
    def evaluate_groups(self, options: EvaluationOptions) -> MultiGroupEvaluationResult:
        groups = self._resolve_groups(options.group_names, options.sort_by_priority)
        logic = options.logic
        results = GroupResults()

        for group in groups:
            single = EvaluationOptions(
                group_names=[group.name],
                data=options.data,
                logic=group.evaluation_logic,
            )
            result = self.evaluate_group(single)
            results.add_result(group.name, result)

            if logic is EvaluationLogic.FAIL_FAST and not result.passed:
                log.debug("evaluate_groups: stopped at failed group %s", group.name)
                return results.fail_fast(group.name)

            if logic is EvaluationLogic.ANY and result.passed:
                log.debug("evaluate_groups: group %s passed, stopping (any)", group.name)
                return results.pass_any()

        return results.to_multi_group_result(logic)

    def _resolve_groups(self, names: List[str], sort_by_priority: bool) -> List[RuleGroup]:
        """
        Порядок вызывающего, повторы убираются, ненайденные имена пропускаются.
        sort_by_priority → стабильная сортировка по priority DESC.
        """
        unique_names = list(dict.fromkeys(names))
        if not unique_names:
            return []

        found = {g.name: g for g in self._storage.find_groups_by_names(unique_names)}
        missing = [n for n in unique_names if n not in found]
        if missing:
            log.debug("evaluate_groups: unknown groups skipped: %s", missing)

        groups = [found[n] for n in unique_names if n in found]
        if sort_by_priority:
            groups.sort(key=lambda g: g.priority, reverse=True)
        return groups
