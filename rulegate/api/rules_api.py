# rulegate/api/rules_api.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from rulegate.rules.types import EvaluationLogic, EvaluationOptions, RuleGroup
from rulegate.rules_loader import load_groups_from_yaml
from rulegate.runtime import RuleEngineContext, get_rule_engine

router = APIRouter(prefix="/api/rules", tags=["rules"])


# ---------------------------------------------------------------------------
# DTO
# ---------------------------------------------------------------------------

class EvaluateDTO(BaseModel):
    # можно прислать либо group, либо group_names (строку или список)
    group: Optional[str] = None
    group_names: Optional[Union[str, List[str]]] = None
    data: Dict[str, Any] = Field(default_factory=dict)


class EvaluateGroupsDTO(BaseModel):
    group_names: Union[str, List[str]] = Field(default_factory=list)
    data: Dict[str, Any] = Field(default_factory=dict)
    logic: str = EvaluationLogic.ALL.value
    sort_by_priority: bool = False


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------

def _context() -> RuleEngineContext:
    ctx = get_rule_engine()
    if ctx is None:
        raise HTTPException(503, "Rule engine is not initialized")
    return ctx


def _group_to_dict(group: RuleGroup) -> Dict[str, Any]:
    return {
        "name": group.name,
        "priority": group.priority,
        "evaluation_logic": group.evaluation_logic.value,
        "rules": [
            {
                "name": r.name,
                "expression": r.expression,
                "priority": r.priority,
                "action_type": r.action_type,
                "action_value": r.action_value,
                "error_message": r.error_message,
            }
            for r in group.rules
        ],
    }


# ---------------------------------------------------------------------------
# endpoints
# ---------------------------------------------------------------------------

@router.get("/groups")
def list_groups() -> List[Dict[str, Any]]:
    ctx = _context()
    return [_group_to_dict(g) for g in ctx.storage.list_groups()]


@router.get("/logic")
def list_logic() -> Dict[str, str]:
    """Варианты evaluation_logic с подписями (для UI)."""
    return EvaluationLogic.options()


@router.post("/evaluate")
def evaluate_group(body: EvaluateDTO) -> Dict[str, Any]:
    ctx = _context()

    names: Union[str, List[str]] = []
    if body.group_names is not None:
        names = body.group_names
    elif body.group:
        names = body.group

    result = ctx.evaluate_group(EvaluationOptions(group_names=names, data=body.data))
    out = result.to_dict()
    out["messages"] = result.format_failed_rules_messages()
    return out


@router.post("/evaluate-groups")
def evaluate_groups(body: EvaluateGroupsDTO) -> Dict[str, Any]:
    ctx = _context()
    try:
        options = EvaluationOptions(
            group_names=body.group_names,
            data=body.data,
            logic=body.logic,
            sort_by_priority=body.sort_by_priority,
        )
    except ValueError as e:
        raise HTTPException(400, str(e))

    return ctx.evaluate_groups(options).to_dict()


@router.post("/reload")
def reload_groups() -> Dict[str, Any]:
    ctx = _context()
    if not ctx.rules_file:
        raise HTTPException(404, "rules.file is not configured")

    try:
        loaded = load_groups_from_yaml(ctx.rules_file, ctx.storage)
    except FileNotFoundError:
        raise HTTPException(404, f"{ctx.rules_file} not found")
    except ValueError as e:
        raise HTTPException(400, f"rules load failed: {e}")

    return {
        "ok": True,
        "groups_count": len(loaded),
        "rules_count": sum(len(g.rules) for g in loaded),
    }
