# rulegate/rules/actions.py
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Protocol, runtime_checkable

from .types import ActionResult

log = logging.getLogger("rules.actions")


# --------------------------------------------------------------------------- #
# Ошибки
# --------------------------------------------------------------------------- #

class ActionHandlerNotFound(LookupError):
    """В реестре нет обработчика для такого типа действия."""

    def __init__(self, action_type: str) -> None:
        super().__init__(f"No handler found for action type: {action_type}")
        self.action_type = action_type


class ActionFailedError(RuntimeError):
    """Действие упало, а политика throw_on_error требует пробросить ошибку."""

    def __init__(self, action_type: str, error: Optional[str]) -> None:
        message = f"Action '{action_type}' failed"
        if error:
            message = f"{message}: {error}"
        super().__init__(message)
        self.action_type = action_type
        self.error = error


# --------------------------------------------------------------------------- #
# Контракт обработчика
# --------------------------------------------------------------------------- #

@runtime_checkable
class ActionHandler(Protocol):
    """
    Внешний плагин действия.

    supports(type) → умеет ли обработчик этот тип;
    handle(value, context) → ActionResult (context только для чтения).
    """

    def supports(self, action_type: str) -> bool:
        ...

    def handle(self, action_value: Mapping[str, Any], context: Mapping[str, Any]) -> ActionResult:
        ...


class BaseActionHandler:
    """Удобная база: поддерживаемые типы перечислены в action_types."""

    action_types: tuple = ()

    def supports(self, action_type: str) -> bool:
        return action_type in self.action_types

    def handle(self, action_value: Mapping[str, Any], context: Mapping[str, Any]) -> ActionResult:
        raise NotImplementedError


# --------------------------------------------------------------------------- #
# Реестр
# --------------------------------------------------------------------------- #

class ActionRegistry:
    """
    action_type → обработчик.

    Проверка supports() делается при регистрации, а не при вызове.
    Повторная регистрация того же типа молча заменяет обработчик.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, ActionHandler] = {}

    def register(self, action_type: str, handler: ActionHandler) -> None:
        if not handler.supports(action_type):
            raise ValueError(f"Handler does not support action type: {action_type}")
        self._handlers[action_type] = handler

    def register_multiple(self, handlers: Mapping[str, ActionHandler]) -> None:
        for action_type, handler in handlers.items():
            self.register(action_type, handler)

    def get(self, action_type: str) -> ActionHandler:
        try:
            return self._handlers[action_type]
        except KeyError:
            raise ActionHandlerNotFound(action_type) from None

    def has(self, action_type: str) -> bool:
        return action_type in self._handlers

    def handlers(self) -> Dict[str, ActionHandler]:
        return dict(self._handlers)

    def unregister(self, action_type: str) -> bool:
        return self._handlers.pop(action_type, None) is not None

    def clear(self) -> None:
        self._handlers.clear()

    def count(self) -> int:
        return len(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)

    def __contains__(self, action_type: object) -> bool:
        return action_type in self._handlers


# --------------------------------------------------------------------------- #
# Диспетчер
# --------------------------------------------------------------------------- #

class RuleActionHandler:
    """
    Выполняет действие правила и вливает его результат в контекст.

    Политика ошибок (throw_on_error):
      - False: неизвестный тип → warning, упавшее действие → error в лог;
               контекст возвращается таким, каким был ДО действия.
      - True:  неизвестный тип → ValueError, упавшее действие → ActionFailedError.
    """

    def __init__(self, registry: ActionRegistry, throw_on_error: bool = False) -> None:
        self._registry = registry
        self._throw_on_error = throw_on_error

    @property
    def registry(self) -> ActionRegistry:
        return self._registry

    @property
    def throw_on_error(self) -> bool:
        return self._throw_on_error

    def handle(
        self,
        action_type: str,
        action_value: Optional[Mapping[str, Any]],
        context: Mapping[str, Any],
    ) -> Dict[str, Any]:
        if not self._registry.has(action_type):
            self._handle_unknown_action(action_type, action_value)
            return dict(context)

        handler = self._registry.get(action_type)
        try:
            result = handler.handle(dict(action_value or {}), dict(context))
        except Exception as exc:  # noqa: BLE001
            # исключение из плагина = ActionResult.failure
            result = ActionResult.failure(str(exc) or type(exc).__name__)

        if result.success:
            merged = dict(context)
            merged.update(result.context or {})
            return merged

        self._handle_action_error(action_type, result.error)
        return dict(context)

    # ------------------------------------------------------------------
    def _handle_unknown_action(self, action_type: str, action_value: Any) -> None:
        message = f"Unknown action type: {action_type}"
        if self._throw_on_error:
            raise ValueError(message)
        log.warning("%s (value=%r)", message, action_value)

    def _handle_action_error(self, action_type: str, error: Optional[str]) -> None:
        exc = ActionFailedError(action_type, error)
        log.error("%s", exc)
        if self._throw_on_error:
            raise exc
