# rulegate/core/config.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import yaml
from pydantic import Field, PrivateAttr
from pydantic_settings import BaseSettings

from rulegate.core.validate_cfg import validate_cfg

DEFAULT_DB_URL = "sqlite:///./data/rules.db"
DEFAULT_PROVIDERS = ["rulegate.rules.providers:DefaultFunctionsProvider"]


class Settings(BaseSettings):
    # путь к основному YAML (можно переопределить переменной окружения CONFIG_FILE)
    config_file: str = Field(default="config.yaml", validation_alias="CONFIG_FILE")

    # внутреннее хранилище загруженного YAML
    _cfg: Dict[str, Any] = PrivateAttr(default_factory=dict)
    _config_path: Path | None = PrivateAttr(default=None)

    # ───────── пути ─────────
    @property
    def config_path(self) -> Path:
        if self._config_path is None:
            p = Path(self.config_file)
            if not p.is_absolute():
                p = Path.cwd() / p
            self._config_path = p
        return self._config_path

    # ───────── YAML cfg ─────────
    @property
    def cfg(self) -> Dict[str, Any]:
        return self._cfg

    def load_yaml_config(self) -> None:
        p = self.config_path
        if p.exists():
            with open(p, "r", encoding="utf-8") as f:
                self._cfg = yaml.safe_load(f) or {}
                validate_cfg(self._cfg)  # выбросит ValueError, если что-то не так
        else:
            self._cfg = {}

    # ───────── удобные секции ─────────
    @property
    def rule_engine(self) -> Dict[str, Any]:
        return self._cfg.get("rule_engine") or {}

    @property
    def throw_on_error(self) -> bool:
        v = self.rule_engine.get("throw_on_error", False)
        if isinstance(v, str):
            return v.lower() == "true"
        return bool(v)

    @property
    def custom_handlers(self) -> Dict[str, str]:
        return dict(self.rule_engine.get("custom_handlers") or {})

    @property
    def expression_providers(self) -> List[str]:
        providers = self.rule_engine.get("expression_providers")
        if providers is None:
            return list(DEFAULT_PROVIDERS)
        return list(providers)

    @property
    def db_url(self) -> str:
        return (self._cfg.get("db") or {}).get("url", DEFAULT_DB_URL)

    @property
    def rules(self) -> Dict[str, Any]:
        return self._cfg.get("rules") or {}

    @property
    def rules_file(self) -> str | None:
        return self.rules.get("file")

    @property
    def rules_storage(self) -> str:
        return str(self.rules.get("storage", "memory")).strip().lower()


settings = Settings()
