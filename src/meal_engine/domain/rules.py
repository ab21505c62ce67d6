"""Rule evaluation for the 2 Rules and related meal limits."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RulePolicy:
    """Tunable thresholds used by the rule checks."""

    fructose_daily_limit_chronic_g: float = 15.0
    fructose_daily_limit_g: float = 25.0
    omega_ratio_min: float = 1.5
    omega_ratio_max: float = 2.9
    net_carbs_limit_meal_g: float = 15.0
    net_carbs_limit_day_g: float = 45.0
    meals_per_day: int = 3

    @property
    def omega_band_label(self) -> str:
        """Human-readable ratio band, e.g. ``1:1.5-1:2.9``."""
        return f"1:{self.omega_ratio_min:g}-1:{self.omega_ratio_max:g}"


DEFAULT_POLICY = RulePolicy()


@dataclass(frozen=True)
class MacronutrientBreakdown:
    """Calorie-weighted share of protein, carbs and fat."""

    protein_percentage: int
    carbs_percentage: int
    fat_percentage: int


def omega_ratio(omega3: float, omega6: float) -> str:
    """Format omega6/omega3 as ``1:x.xx``."""
    if omega3 <= 0:
        return "N/A"
    return f"1:{omega6 / omega3:.2f}"


def omega_ratio_valid(
    omega3: float, omega6: float, policy: RulePolicy = DEFAULT_POLICY
) -> bool:
    """Return True when omega6/omega3 lies inside the policy band."""
    if omega3 <= 0:
        return False
    ratio = omega6 / omega3
    return policy.omega_ratio_min <= ratio <= policy.omega_ratio_max


def fructose_limit(
    has_chronic_condition: bool,
    is_full_day: bool = False,
    policy: RulePolicy = DEFAULT_POLICY,
) -> float:
    """Return the fructose ceiling in grams for a meal or a day."""
    daily = (
        policy.fructose_daily_limit_chronic_g
        if has_chronic_condition
        else policy.fructose_daily_limit_g
    )
    if is_full_day:
        return daily
    return daily / policy.meals_per_day


def fructose_valid(
    fructose: float,
    has_chronic_condition: bool,
    is_full_day: bool = False,
    policy: RulePolicy = DEFAULT_POLICY,
) -> bool:
    """Return True when fructose is within the applicable ceiling."""
    return fructose <= fructose_limit(has_chronic_condition, is_full_day, policy)


def follows_two_rules(  # noqa: PLR0913
    fructose: float,
    omega3: float,
    omega6: float,
    has_chronic_condition: bool,
    is_full_day: bool = False,
    policy: RulePolicy = DEFAULT_POLICY,
) -> bool:
    """Return True when both the omega band and the fructose ceiling hold."""
    return omega_ratio_valid(omega3, omega6, policy) and fructose_valid(
        fructose, has_chronic_condition, is_full_day, policy
    )


def net_carbs(carbs: float, fiber: float) -> float:
    """Total carbohydrates minus fiber, floored at zero."""
    return max(0.0, carbs - fiber)


def net_carbs_limit(
    is_full_day: bool = False, policy: RulePolicy = DEFAULT_POLICY
) -> float:
    """Return the net-carb ceiling in grams."""
    if is_full_day:
        return policy.net_carbs_limit_day_g
    return policy.net_carbs_limit_meal_g


def macronutrient_breakdown(
    protein: float, carbs: float, fat: float
) -> MacronutrientBreakdown:
    """Compute macro percentages using 4/4/9 kcal per gram."""
    protein_kcal = protein * 4
    carbs_kcal = carbs * 4
    fat_kcal = fat * 9
    total = protein_kcal + carbs_kcal + fat_kcal
    if total <= 0:
        return MacronutrientBreakdown(0, 0, 0)
    return MacronutrientBreakdown(
        protein_percentage=round(protein_kcal / total * 100),
        carbs_percentage=round(carbs_kcal / total * 100),
        fat_percentage=round(fat_kcal / total * 100),
    )
