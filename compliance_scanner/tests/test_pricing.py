import pytest

from compliance_scanner.app.escalation.pricing import PRICING, calculate_cost


def test_known_model_cost():
    assert calculate_cost("gpt-4o-mini", 1000, 200) == pytest.approx(0.00027)
    assert calculate_cost("claude-sonnet-4", 1_000_000, 0) == pytest.approx(3.0)


def test_unknown_model_is_free():
    assert calculate_cost("my-local-model", 10_000, 10_000) == 0.0


def test_pricing_table_is_non_negative():
    assert PRICING
    for pricing in PRICING.values():
        assert pricing.input >= 0
        assert pricing.output >= 0
