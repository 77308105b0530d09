# rulegate/rules_loader.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import yaml

from rulegate.rules.storage import RuleGroupStorage
from rulegate.rules.types import EvaluationLogic, Rule, RuleGroup


def _parse_rule(d: Dict[str, Any], where: str) -> Rule:
    if not isinstance(d, dict):
        raise ValueError(f"{where}: rule must be a mapping")

    name = str(d.get("name") or "").strip()
    if not name:
        raise ValueError(f"{where}: 'name' is required")

    expression = str(d.get("expression") or "").strip()
    if not expression:
        raise ValueError(f"{where} ({name}): 'expression' is required")

    action_value = d.get("action_value")
    if action_value is not None and not isinstance(action_value, dict):
        raise ValueError(f"{where} ({name}): 'action_value' must be a mapping")

    action_type = d.get("action_type")
    return Rule(
        name=name,
        expression=expression,
        priority=int(d.get("priority", 0) or 0),
        action_type=str(action_type) if action_type else None,
        action_value=action_value,
        error_message=d.get("error_message"),
        active=bool(d.get("active", True)),
    )


def _parse_group(d: Dict[str, Any], idx: int) -> RuleGroup:
    where = f"groups[{idx}]"
    if not isinstance(d, dict):
        raise ValueError(f"{where}: group must be a mapping")

    name = str(d.get("name") or "").strip()
    if not name:
        raise ValueError(f"{where}: 'name' is required")

    items = d.get("rules") or []
    if not isinstance(items, list):
        raise ValueError(f"{where} ({name}): 'rules' must be a list")

    rules = [
        _parse_rule(rd, f"{where}.rules[{i}]")
        for i, rd in enumerate(items)
    ]

    return RuleGroup(
        name=name,
        priority=int(d.get("priority", 0) or 0),
        # у группы по умолчанию ANY, как в таблице rule_groups
        evaluation_logic=EvaluationLogic.coerce(d.get("evaluation_logic") or "any"),
        rules=tuple(rules),
    )


def load_groups_from_yaml(
    path: str,
    storage: RuleGroupStorage,
    replace: bool = True,
) -> List[RuleGroup]:
    """
    Загружает группы правил из YAML-файла вида:

    groups:
      - name: "order_discount"
        priority: 10
        evaluation_logic: "all"     # all / any / fail_fast
        rules:
          - name: "big_order"
            expression: "order_total > 100"
            priority: 5
            action_type: "set_context"
            action_value:
              discount: 10
            error_message: "Order total is too small"

    replace=True → перед загрузкой хранилище очищается.
    Файл сначала разбирается целиком, хранилище трогаем только если всё валидно.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"rules file not found: {path}")

    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"rules file is not valid YAML: {exc}") from exc

    if not isinstance(data, dict):
        raise ValueError("rules file: root must be a mapping")
    items = data.get("groups") or []
    if not isinstance(items, list):
        raise ValueError("rules file: 'groups' must be a list")

    groups = [_parse_group(gd, idx) for idx, gd in enumerate(items)]

    if replace:
        storage.clear()

    for group in groups:
        storage.save_group(group)

    return groups
