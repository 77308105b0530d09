# rulegate/core/validate_cfg.py
from __future__ import annotations
from typing import Any, Dict

ALLOWED_STORAGES = {"memory", "sql"}


def _as_bool(v, name) -> bool:
    if isinstance(v, bool):
        return v
    # допускаем 'true'/'false'/1/0 из yaml
    if isinstance(v, (int, float)) and v in (0, 1):
        return bool(v)
    if isinstance(v, str) and v.lower() in ("true", "false"):
        return v.lower() == "true"
    raise ValueError(f"{name}: должен быть true/false")


def _as_import_path(v, name) -> str:
    s = str(v or "").strip()
    if not s:
        raise ValueError(f"{name}: путь импорта не должен быть пустым")
    if ":" not in s and "." not in s:
        raise ValueError(f"{name}: ожидается 'package.module:Name', получено {v!r}")
    return s


def _section(cfg: Dict[str, Any], key: str) -> Dict[str, Any]:
    sec = cfg.get(key, {})
    if sec is None:
        return {}
    if not isinstance(sec, dict):
        raise ValueError(f"{key}: должен быть объектом")
    return sec


def validate_cfg(cfg: Dict[str, Any]) -> None:
    """Бросает ValueError с понятным текстом, если конфиг некорректен."""
    if not isinstance(cfg, dict):
        raise ValueError("корневой YAML должен быть объектом")

    # ─── rule_engine ───
    engine = _section(cfg, "rule_engine")
    if "throw_on_error" in engine:
        _as_bool(engine["throw_on_error"], "rule_engine.throw_on_error")

    handlers = engine.get("custom_handlers") or {}
    if not isinstance(handlers, dict):
        raise ValueError("rule_engine.custom_handlers: должен быть объектом {тип: путь}")
    for action_type, path in handlers.items():
        if not str(action_type).strip():
            raise ValueError("rule_engine.custom_handlers: пустой тип действия")
        _as_import_path(path, f"rule_engine.custom_handlers.{action_type}")

    providers = engine.get("expression_providers")
    if providers is not None:
        if not isinstance(providers, list):
            raise ValueError("rule_engine.expression_providers: должен быть списком")
        for i, path in enumerate(providers):
            _as_import_path(path, f"rule_engine.expression_providers[{i}]")

    # ─── db ───
    db = _section(cfg, "db")
    if "url" in db and not str(db.get("url") or "").strip():
        raise ValueError("db.url: не должен быть пустым (например sqlite:///./data/rules.db)")

    # ─── rules ───
    rules = _section(cfg, "rules")
    if "file" in rules and not str(rules.get("file") or "").strip():
        raise ValueError("rules.file: не должен быть пустым")
    storage = str(rules.get("storage", "memory")).strip().lower()
    if storage not in ALLOWED_STORAGES:
        raise ValueError(
            f"rules.storage: ожидается одно из {sorted(ALLOWED_STORAGES)}, получено {storage!r}"
        )
