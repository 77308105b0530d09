# rulegate/runtime.py
from __future__ import annotations

import importlib
import inspect
import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from rulegate.core.config import DEFAULT_PROVIDERS, Settings
from rulegate.rules.actions import ActionHandler, ActionRegistry, RuleActionHandler
from rulegate.rules.engine import RuleEngine
from rulegate.rules.evaluator import RuleEvaluator
from rulegate.rules.expression import ExpressionEvaluator
from rulegate.rules.handlers import LogActionHandler, SetContextActionHandler
from rulegate.rules.repositories import InMemoryRuleGroupStorage
from rulegate.rules.storage import RuleGroupStorage
from rulegate.rules.types import (
    EvaluationOptions,
    EvaluationResult,
    MultiGroupEvaluationResult,
)

log = logging.getLogger("rules.runtime")

OptionsLike = Union[EvaluationOptions, Mapping[str, Any]]

# Глобальный инстанс только для HTTP-слоя; ядро про него не знает
_CONTEXT: Optional["RuleEngineContext"] = None


def resolve_object(path: str) -> Any:
    """
    "package.module:Name" или "package.module.Name" → объект.
    ValueError, если модуль или атрибут не найден.
    """
    raw = str(path or "").strip()
    if ":" in raw:
        module_name, _, attr = raw.partition(":")
    else:
        module_name, _, attr = raw.rpartition(".")
    if not module_name or not attr:
        raise ValueError(f"Invalid import path: {path!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ValueError(f"Cannot import {module_name!r} for {path!r}: {exc}") from exc

    obj = module
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError:
            raise ValueError(f"{module_name!r} has no attribute {attr!r}") from None
    return obj


def _make_handler(handler: Any) -> ActionHandler:
    """Экземпляр, класс или путь импорта → экземпляр обработчика."""
    if isinstance(handler, str):
        handler = resolve_object(handler)
    if inspect.isclass(handler):
        handler = handler()
    if not isinstance(handler, ActionHandler):
        raise ValueError(f"{handler!r} is not an action handler (supports/handle)")
    return handler


def _make_provider(provider: Any) -> Any:
    # классы инстанцирует сам ExpressionEvaluator (ему нужен evaluator=)
    if isinstance(provider, str):
        return resolve_object(provider)
    return provider


def _as_options(options: OptionsLike) -> EvaluationOptions:
    if isinstance(options, EvaluationOptions):
        return options
    return EvaluationOptions.from_dict(dict(options))


class RuleEngineContext:
    """
    Собранный движок: хранилище, реестр действий, диспетчер, выражения.

    Каждый экземпляр независим, поэтому в тестах их можно создавать сколько угодно.
    """

    def __init__(
        self,
        *,
        storage: Optional[RuleGroupStorage] = None,
        throw_on_error: bool = False,
        custom_handlers: Optional[Mapping[str, Any]] = None,
        expression_providers: Optional[Iterable[Any]] = None,
        rules_file: Optional[str] = None,
    ) -> None:
        self.storage: RuleGroupStorage = storage if storage is not None else InMemoryRuleGroupStorage()
        self.rules_file = rules_file

        self.registry = ActionRegistry()
        self.registry.register_multiple(self._builtin_handlers())
        for action_type, handler in (custom_handlers or {}).items():
            self.register_action_handler(action_type, handler)

        self.action_handler = RuleActionHandler(self.registry, throw_on_error=throw_on_error)

        providers = DEFAULT_PROVIDERS if expression_providers is None else expression_providers
        self.expressions = ExpressionEvaluator([_make_provider(p) for p in providers])
        self.evaluator = RuleEvaluator(self.expressions)

        self.engine = RuleEngine(
            storage=self.storage,
            evaluator=self.evaluator,
            action_handler=self.action_handler,
        )

    @staticmethod
    def _builtin_handlers() -> Dict[str, ActionHandler]:
        log_handler = LogActionHandler()
        set_handler = SetContextActionHandler()
        return {"log": log_handler, "set_context": set_handler}

    # ------------------------------------------------------------------ #
    # ПУБЛИЧНЫЙ API
    # ------------------------------------------------------------------ #
    def register_action_handler(self, action_type: str, handler: Any) -> None:
        instance = _make_handler(handler)
        self.registry.register(action_type, instance)
        log.debug("action handler registered: %s -> %s", action_type, type(instance).__name__)

    def evaluate_group(self, options: OptionsLike) -> EvaluationResult:
        return self.engine.evaluate_group(_as_options(options))

    def evaluate_groups(self, options: OptionsLike) -> MultiGroupEvaluationResult:
        return self.engine.evaluate_groups(_as_options(options))


def build_context(
    settings: Settings,
    storage: Optional[RuleGroupStorage] = None,
) -> RuleEngineContext:
    """Собрать контекст по уже загруженным настройкам (settings.load_yaml_config())."""
    return RuleEngineContext(
        storage=storage,
        throw_on_error=settings.throw_on_error,
        custom_handlers=settings.custom_handlers,
        expression_providers=settings.expression_providers,
        rules_file=settings.rules_file,
    )


def init_rule_engine(
    settings: Settings,
    storage: Optional[RuleGroupStorage] = None,
) -> RuleEngineContext:
    """
    Инициализировать движок правил процесса.
    Вызываем один раз на старте приложения.
    """
    global _CONTEXT
    _CONTEXT = build_context(settings, storage)
    log.info(
        "rule engine started: storage=%s, handlers=%s, throw_on_error=%s",
        type(_CONTEXT.storage).__name__,
        sorted(_CONTEXT.registry.handlers()),
        _CONTEXT.action_handler.throw_on_error,
    )
    return _CONTEXT


def get_rule_engine() -> Optional[RuleEngineContext]:
    """Вернёт текущий контекст движка (или None, если не инициализирован)."""
    return _CONTEXT


def set_rule_engine(ctx: Optional[RuleEngineContext]) -> None:
    global _CONTEXT
    _CONTEXT = ctx
