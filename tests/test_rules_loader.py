# tests/test_rules_loader.py
from __future__ import annotations

import textwrap

import pytest

from rulegate.rules.repositories import InMemoryRuleGroupStorage
from rulegate.rules.types import EvaluationLogic, RuleGroup
from rulegate.rules_loader import load_groups_from_yaml

RULES_YAML = textwrap.dedent(
    """
    groups:
      - name: discounts
        priority: 5
        evaluation_logic: fail_fast
        rules:
          - name: big_order
            expression: "total > 100"
            priority: 10
            action_type: set_context
            action_value:
              discount: 10
            error_message: "Order is too small"
          - name: disabled
            expression: "true"
            active: false
      - name: defaults
        rules:
          - name: any_rule
            expression: "true"
    """
)


def _write(tmp_path, text):
    p = tmp_path / "rules.yaml"
    p.write_text(text, encoding="utf-8")
    return str(p)


def test_load_groups(tmp_path):
    storage = InMemoryRuleGroupStorage()
    loaded = load_groups_from_yaml(_write(tmp_path, RULES_YAML), storage)

    assert [g.name for g in loaded] == ["discounts", "defaults"]
    assert len(loaded[0].rules) == 2

    discounts = storage.find_group_by_name("discounts")
    assert discounts.priority == 5
    assert discounts.evaluation_logic is EvaluationLogic.FAIL_FAST
    assert [r.name for r in discounts.rules] == ["big_order"]
    assert discounts.rules[0].action_value == {"discount": 10}

    assert storage.find_group_by_name("defaults").evaluation_logic is EvaluationLogic.ANY


def test_replace_clears_storage(tmp_path):
    storage = InMemoryRuleGroupStorage([RuleGroup("old")])
    load_groups_from_yaml(_write(tmp_path, RULES_YAML), storage)
    assert storage.find_group_by_name("old") is None


def test_merge_keeps_existing(tmp_path):
    storage = InMemoryRuleGroupStorage([RuleGroup("old")])
    load_groups_from_yaml(_write(tmp_path, RULES_YAML), storage, replace=False)
    assert storage.find_group_by_name("old") is not None


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_groups_from_yaml(str(tmp_path / "none.yaml"), InMemoryRuleGroupStorage())


@pytest.mark.parametrize(
    "text, fragment",
    [
        ("groups: {}", "'groups' must be a list"),
        ("- 1\n- 2", "root must be a mapping"),
        ("groups:\n  - priority: 1", "'name' is required"),
        ("groups:\n  - name: g\n    rules:\n      - name: r", "'expression' is required"),
        ("groups:\n  - name: g\n    evaluation_logic: most", "Unknown evaluation logic"),
        ("groups: [", "not valid YAML"),
    ],
)
def test_invalid_content(tmp_path, text, fragment):
    storage = InMemoryRuleGroupStorage([RuleGroup("keep")])
    with pytest.raises(ValueError, match=fragment):
        load_groups_from_yaml(_write(tmp_path, text), storage)
    # битый файл не трогает хранилище
    assert storage.find_group_by_name("keep") is not None
