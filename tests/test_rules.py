"""Tests for rule evaluation."""

import pytest

from meal_engine.domain.rules import (
    MacronutrientBreakdown,
    RulePolicy,
    follows_two_rules,
    fructose_limit,
    fructose_valid,
    macronutrient_breakdown,
    net_carbs,
    net_carbs_limit,
    omega_ratio,
    omega_ratio_valid,
)


def test_omega_ratio_formats_two_decimals() -> None:
    assert omega_ratio(2.0, 4.0) == "1:2.00"
    assert omega_ratio(3.0, 5.0) == "1:1.67"


def test_omega_ratio_without_omega3_is_not_available() -> None:
    assert omega_ratio(0.0, 4.0) == "N/A"
    assert omega_ratio_valid(0.0, 4.0) is False
    assert omega_ratio_valid(0.0, 0.0) is False


@pytest.mark.parametrize(
    ("omega3", "omega6", "expected"),
    [
        (1.0, 1.5, True),
        (1.0, 2.9, True),
        (1.0, 1.49, False),
        (1.0, 2.91, False),
        (2.0, 7.0, False),
    ],
)
def test_omega_band_is_inclusive(omega3: float, omega6: float, expected: bool) -> None:
    assert omega_ratio_valid(omega3, omega6) is expected


def test_fructose_limits_per_meal_and_day() -> None:
    assert fructose_limit(True, is_full_day=True) == 15.0
    assert fructose_limit(False, is_full_day=True) == 25.0
    assert fructose_limit(True) == pytest.approx(5.0)
    assert fructose_limit(False) == pytest.approx(25.0 / 3)


def test_fructose_valid_at_boundary() -> None:
    assert fructose_valid(5.0, True) is True
    assert fructose_valid(5.01, True) is False
    assert fructose_valid(8.0, False) is True


def test_follows_two_rules_needs_both_rules() -> None:
    assert follows_two_rules(1.0, 2.0, 4.0, False) is True
    assert follows_two_rules(9.0, 2.0, 4.0, False) is False
    assert follows_two_rules(1.0, 2.0, 7.0, False) is False


def test_net_carbs_floor_and_limits() -> None:
    assert net_carbs(10.0, 4.0) == 6.0
    assert net_carbs(3.0, 5.0) == 0.0
    assert net_carbs_limit() == 15.0
    assert net_carbs_limit(is_full_day=True) == 45.0


def test_macronutrient_breakdown_uses_calorie_weights() -> None:
    breakdown = macronutrient_breakdown(protein=25.0, carbs=25.0, fat=0.0)
    assert breakdown == MacronutrientBreakdown(50, 50, 0)

    weighted = macronutrient_breakdown(protein=10.0, carbs=0.0, fat=10.0)
    assert weighted.protein_percentage == 31
    assert weighted.fat_percentage == 69


def test_macronutrient_breakdown_of_nothing_is_zero() -> None:
    assert macronutrient_breakdown(0.0, 0.0, 0.0) == MacronutrientBreakdown(0, 0, 0)


def test_custom_policy_changes_band_and_label() -> None:
    policy = RulePolicy(omega_ratio_min=1.0, omega_ratio_max=4.0)

    assert policy.omega_band_label == "1:1-1:4"
    assert omega_ratio_valid(1.0, 3.5, policy) is True
    assert omega_ratio_valid(1.0, 3.5) is False
