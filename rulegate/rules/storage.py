# rulegate/rules/storage.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from .types import RuleGroup


# ======================================================================
# ХРАНИЛИЩЕ ГРУПП ПРАВИЛ
# ======================================================================

class RuleGroupStorage(ABC):
    """
    Абстрактное хранилище групп правил.
    Реализации:
      - in-memory (для тестов и YAML-конфигурации)
      - БД через SQLAlchemy

    Группа отдаётся снимком: в rules только активные правила,
    по убыванию priority, при равном priority в порядке вставки.
    """

    @abstractmethod
    def find_group_by_name(self, name: str) -> Optional[RuleGroup]:
        """Группа по имени или None."""
        raise NotImplementedError

    @abstractmethod
    def find_groups_by_names(self, names: Iterable[str]) -> List[RuleGroup]:
        """Найденные группы; порядок не гарантируется, ненайденные пропускаются."""
        raise NotImplementedError

    @abstractmethod
    def list_groups(self) -> List[RuleGroup]:
        """Все группы."""
        raise NotImplementedError

    @abstractmethod
    def save_group(self, group: RuleGroup) -> None:
        """
        Создать или заменить группу вместе с правилами.
        В group.rules могут быть и неактивные правила, они тоже сохраняются.
        """
        raise NotImplementedError

    @abstractmethod
    def delete_group(self, name: str) -> bool:
        """Удалить группу и все её правила. False, если группы не было."""
        raise NotImplementedError

    def clear(self) -> None:
        for group in self.list_groups():
            self.delete_group(group.name)
