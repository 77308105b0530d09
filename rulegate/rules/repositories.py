# rulegate/rules/repositories.py
from __future__ import annotations

from dataclasses import replace
from threading import RLock
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from rulegate.db.models import RuleGroupRecord, RuleRecord

from .storage import RuleGroupStorage
from .types import EvaluationLogic, Rule, RuleGroup, order_active_rules


def _snapshot(group: RuleGroup) -> RuleGroup:
    """Копия группы только с активными правилами в порядке вычисления."""
    return replace(group, rules=order_active_rules(group.rules))


# ======================================================================
# 1. IN-MEMORY ХРАНИЛИЩЕ
# ======================================================================

class InMemoryRuleGroupStorage(RuleGroupStorage):
    """
    Простейшее хранилище групп в памяти.
    Подходит для:
      - unit-тестов,
      - правил из YAML-файла.
    """

    def __init__(self, groups: Iterable[RuleGroup] = ()) -> None:
        self._groups: Dict[str, RuleGroup] = {}
        self._lock = RLock()
        for group in groups:
            self.save_group(group)

    def find_group_by_name(self, name: str) -> Optional[RuleGroup]:
        with self._lock:
            group = self._groups.get(name)
        return _snapshot(group) if group is not None else None

    def find_groups_by_names(self, names: Iterable[str]) -> List[RuleGroup]:
        wanted = set(names)
        with self._lock:
            found = [g for n, g in self._groups.items() if n in wanted]
        return [_snapshot(g) for g in found]

    def list_groups(self) -> List[RuleGroup]:
        with self._lock:
            groups = list(self._groups.values())
        return [_snapshot(g) for g in groups]

    def save_group(self, group: RuleGroup) -> None:
        with self._lock:
            self._groups[group.name] = group

    def delete_group(self, name: str) -> bool:
        with self._lock:
            return self._groups.pop(name, None) is not None


# ======================================================================
# 2. ХРАНИЛИЩЕ В БД (SQLAlchemy)
# ======================================================================

class SqlRuleGroupStorage(RuleGroupStorage):
    """
    Группы и правила в таблицах rule_groups / rules.
    Каждый вызов открывает свою сессию и отдаёт отвязанный от неё снимок.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    # --- чтение -----------------------------------------------------------

    def find_group_by_name(self, name: str) -> Optional[RuleGroup]:
        with self._session_factory() as db:
            row = db.execute(
                select(RuleGroupRecord)
                .options(selectinload(RuleGroupRecord.rules))
                .where(RuleGroupRecord.name == name)
            ).scalar_one_or_none()
            return self._to_group(row) if row is not None else None

    def find_groups_by_names(self, names: Iterable[str]) -> List[RuleGroup]:
        wanted = list(dict.fromkeys(names))
        if not wanted:
            return []
        with self._session_factory() as db:
            rows = db.execute(
                select(RuleGroupRecord)
                .options(selectinload(RuleGroupRecord.rules))
                .where(RuleGroupRecord.name.in_(wanted))
            ).scalars().all()
            return [self._to_group(r) for r in rows]

    def list_groups(self) -> List[RuleGroup]:
        with self._session_factory() as db:
            rows = db.execute(
                select(RuleGroupRecord)
                .options(selectinload(RuleGroupRecord.rules))
                .order_by(RuleGroupRecord.id)
            ).scalars().all()
            return [self._to_group(r) for r in rows]

    # --- запись -----------------------------------------------------------

    def save_group(self, group: RuleGroup) -> None:
        with self._session_factory() as db:
            row = db.execute(
                select(RuleGroupRecord).where(RuleGroupRecord.name == group.name)
            ).scalar_one_or_none()
            if row is None:
                row = RuleGroupRecord(name=group.name)
                db.add(row)

            row.priority = group.priority
            row.evaluation_logic = group.evaluation_logic.value
            # старые правила уходят через delete-orphan
            row.rules = [self._to_record(rule) for rule in group.rules]
            db.commit()

    def delete_group(self, name: str) -> bool:
        with self._session_factory() as db:
            row = db.execute(
                select(RuleGroupRecord).where(RuleGroupRecord.name == name)
            ).scalar_one_or_none()
            if row is None:
                return False
            db.delete(row)
            db.commit()
            return True

    # --- преобразования ---------------------------------------------------

    @staticmethod
    def _to_group(row: RuleGroupRecord) -> RuleGroup:
        rules = [
            Rule(
                name=r.name,
                expression=r.expression,
                priority=r.priority or 0,
                action_type=r.action_type,
                action_value=r.action_value,
                error_message=r.error_message,
                active=bool(r.active),
            )
            for r in sorted(row.rules, key=lambda r: r.id)
        ]
        return RuleGroup(
            name=row.name,
            priority=row.priority or 0,
            evaluation_logic=EvaluationLogic.coerce(row.evaluation_logic),
            rules=order_active_rules(rules),
        )

    @staticmethod
    def _to_record(rule: Rule) -> RuleRecord:
        return RuleRecord(
            name=rule.name,
            expression=rule.expression,
            priority=rule.priority,
            action_type=rule.action_type,
            action_value=rule.action_value,
            error_message=rule.error_message,
            active=rule.active,
        )
