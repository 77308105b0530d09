# rulegate/rules/handlers.py
"""
Встроенные обработчики действий.

Регистрируются в runtime по умолчанию; свои обработчики добавляются через
rule_engine.custom_handlers или RuleEngineContext.register_action_handler().
"""
from __future__ import annotations

import logging
import time
from typing import Any, Mapping

from .actions import BaseActionHandler
from .types import ActionResult

log = logging.getLogger("rules.actions")

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}


class LogActionHandler(BaseActionHandler):
    """
    action_type = "log"
    action_value: {message: str, level?: "INFO"}

    Пишет сообщение в лог и кладёт его в контекст (logged_message, timestamp).
    """

    action_types = ("log",)

    def handle(self, action_value: Mapping[str, Any], context: Mapping[str, Any]) -> ActionResult:
        message = action_value.get("message")
        if not message:
            return ActionResult.failure("Message is required for logging")

        level = _LEVELS.get(str(action_value.get("level") or "INFO").upper(), logging.INFO)
        log.log(level, "rule action: %s", message)

        out = dict(context)
        out["logged_message"] = message
        out["timestamp"] = int(time.time())
        return ActionResult.ok(out)


class SetContextActionHandler(BaseActionHandler):
    """
    action_type = "set_context"
    action_value целиком уходит в контекст (ключи перезаписываются).
    """

    action_types = ("set_context",)

    def handle(self, action_value: Mapping[str, Any], context: Mapping[str, Any]) -> ActionResult:
        return ActionResult.ok(dict(action_value))
