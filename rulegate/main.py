# rulegate/main.py
from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI

from rulegate.api.rules_api import router as rules_router
from rulegate.core.config import settings
from rulegate.db.session import setup_database
from rulegate.rules.repositories import InMemoryRuleGroupStorage, SqlRuleGroupStorage
from rulegate.rules.storage import RuleGroupStorage
from rulegate.rules_loader import load_groups_from_yaml
from rulegate.runtime import init_rule_engine

log = logging.getLogger("web")

# ─────────────────────────────────────────────────────────────────────────────
# Приложение
# ─────────────────────────────────────────────────────────────────────────────
app = FastAPI(title="rulegate")

app.include_router(rules_router)


def _make_storage() -> RuleGroupStorage:
    if settings.rules_storage == "sql":
        log.info("rules storage: sql (%s)", settings.db_url)
        return SqlRuleGroupStorage(setup_database(settings.db_url))
    log.info("rules storage: memory")
    return InMemoryRuleGroupStorage()


# ─────────────────────────────────────────────────────────────────────────────
# Старт
# ─────────────────────────────────────────────────────────────────────────────
@app.on_event("startup")
def _on_startup():
    # битый конфиг → ValueError, приложение не стартует
    settings.load_yaml_config()
    ctx = init_rule_engine(settings, _make_storage())

    rules_file = settings.rules_file
    if not rules_file:
        return
    if not Path(rules_file).exists():
        log.warning("rules file %s not found, starting with stored groups only", rules_file)
        return

    try:
        groups = load_groups_from_yaml(rules_file, ctx.storage)
    except ValueError as e:
        log.error("rules file %s is invalid: %s", rules_file, e)
        return
    log.info("loaded %d rule groups from %s", len(groups), rules_file)


@app.get("/health")
def health():
    return {"ok": True}
