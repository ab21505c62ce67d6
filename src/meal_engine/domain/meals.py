"""Domain models for generated meals."""

from dataclasses import dataclass, field

from meal_engine.domain.errors import ErrorKind
from meal_engine.domain.nutrition import EMPTY_NUTRIENTS, NutrientSummary
from meal_engine.domain.options import GenerationType, MealType
from meal_engine.domain.rules import MacronutrientBreakdown


@dataclass(frozen=True)
class Ingredient:
    """Meal ingredient.

    ``name``, ``amount`` and ``unit`` are taken from the model's text.
    ``nutrients`` is only ever filled from the nutrient database, scaled to the
    resolved amount; an unresolved ingredient carries zeros.
    """

    name: str
    amount: str
    unit: str
    nutrients: NutrientSummary = EMPTY_NUTRIENTS
    food_id: int | None = None
    matched_description: str | None = None
    grams: float | None = None

    @property
    def fructose(self) -> float:
        return self.nutrients.fructose

    @property
    def omega3(self) -> float:
        return self.nutrients.omega3

    @property
    def omega6(self) -> float:
        return self.nutrients.omega6

    @property
    def resolved(self) -> bool:
        """True once nutrients were sourced from the database."""
        return self.food_id is not None


@dataclass(frozen=True)
class ReportedNutrients:
    """Figures the text-generation service claimed for the meal.

    Kept for display only; no rule check reads these values.
    """

    fructose: float = 0.0
    omega3: float = 0.0
    omega6: float = 0.0
    omega_ratio: str | None = None
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    calories: float = 0.0
    iron: float = 0.0
    fiber: float = 0.0
    net_carbs: float = 0.0


@dataclass(frozen=True)
class ParsedMeal:
    """Provisional meal extracted from a service reply."""

    name: str
    ingredients: tuple[Ingredient, ...]
    instructions: str
    reported: ReportedNutrients
    heavy_metal_content: dict[str, float] | None
    macronutrient_breakdown: MacronutrientBreakdown


@dataclass(frozen=True)
class GeneratedMeal:
    """A meal whose totals are derived from database-sourced ingredients."""

    name: str
    type: GenerationType
    meal_type: MealType | None
    ingredients: tuple[Ingredient, ...]
    instructions: str
    total_fructose: float
    omega3: float
    omega6: float
    omega_ratio: str
    protein: float
    carbs: float
    fat: float
    calories: float
    iron_content: float
    fiber: float
    heavy_metal_content: dict[str, float] | None
    net_carbs: float
    macronutrient_breakdown: MacronutrientBreakdown
    follows_2_rules: bool
    portions: int
    reported: ReportedNutrients = field(default_factory=ReportedNutrients)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a single validation pass."""

    valid: bool
    reason: str | None = None
    kind: ErrorKind | None = None


VALID = ValidationResult(valid=True)


@dataclass(frozen=True)
class GenerationResult:
    """Meal or error returned to callers; exactly one of them is set."""

    meal: GeneratedMeal | None
    error: str | None = None
    error_kind: ErrorKind | None = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.meal is not None and self.error is None

    @classmethod
    def failure(
        cls, error: str, kind: ErrorKind, attempts: int = 0
    ) -> "GenerationResult":
        """Build a failed result."""
        return cls(meal=None, error=error, error_kind=kind, attempts=attempts)
