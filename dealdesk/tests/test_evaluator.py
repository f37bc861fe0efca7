"""Tests for automation condition evaluation."""

from __future__ import annotations

from dealdesk.automation.evaluator import evaluate_condition, evaluate_conditions

FACTS = {"deal_value": 1500.0, "deal_stage": "Proposal Sent"}


def test_empty_conditions_always_match():
    assert evaluate_conditions(None, FACTS) is True
    assert evaluate_conditions({"conditions": []}, FACTS) is True
    assert evaluate_conditions([], FACTS) is True


def test_numeric_operators():
    assert evaluate_condition({"field": "deal_value", "operator": "greater_than", "value": 1000}, FACTS)
    assert not evaluate_condition({"field": "deal_value", "operator": "less_than", "value": "1000"}, FACTS)
    assert evaluate_condition({"field": "deal_value", "operator": "equals", "value": "1500"}, FACTS)
    assert evaluate_condition({"field": "deal_value", "operator": "not_equals", "value": 10}, FACTS)


def test_string_operators():
    assert evaluate_condition({"field": "deal_stage", "operator": "equals", "value": "Proposal Sent"}, FACTS)
    assert evaluate_condition({"field": "deal_stage", "operator": "contains", "value": "Proposal"}, FACTS)
    assert not evaluate_condition({"field": "deal_stage", "operator": "contains", "value": "Won"}, FACTS)


def test_unknown_field_or_operator_is_skipped():
    assert evaluate_condition({"field": "contact_tag", "operator": "equals", "value": "vip"}, FACTS)
    assert evaluate_condition({"field": "deal_value", "operator": "between", "value": 3}, FACTS)
    config = [
        {"field": "contact_tag", "operator": "equals", "value": "vip"},
        {"field": "deal_stage", "operator": "equals", "value": "Closed Won"},
    ]
    assert evaluate_conditions(config, FACTS) is False
    assert evaluate_conditions(config[:1], FACTS) is True


def test_uncomparable_value_is_false():
    assert not evaluate_condition({"field": "deal_value", "operator": "greater_than", "value": "lots"}, FACTS)


def test_all_conditions_must_hold():
    config = {
        "conditions": [
            {"field": "deal_value", "operator": "greater_than", "value": 1000},
            {"field": "deal_stage", "operator": "equals", "value": "Closed Won"},
        ]
    }
    assert evaluate_conditions(config, FACTS) is False
    assert evaluate_conditions(config, {"deal_value": 2000.0, "deal_stage": "Closed Won"}) is True


def test_no_deal_facts():
    facts = {"deal_value": 0.0, "deal_stage": None}
    assert not evaluate_condition({"field": "deal_stage", "operator": "contains", "value": "New"}, facts)
    assert evaluate_condition({"field": "deal_value", "operator": "less_than", "value": 1}, facts)
