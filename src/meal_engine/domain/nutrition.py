"""Nutrition domain models."""

import re
from dataclasses import dataclass
from enum import Enum


class NutrientComponent(Enum):
    """Nutrients tracked by the engine, independent of database numbering."""

    PROTEIN = "protein"
    FAT = "fat"
    CARBOHYDRATE = "carbohydrate"
    ENERGY_KCAL = "energy_kcal"
    FIBER = "fiber"
    FRUCTOSE = "fructose"
    IRON = "iron"
    OMEGA3_ALA = "omega3_ala"
    OMEGA3_EPA = "omega3_epa"
    OMEGA3_DHA = "omega3_dha"
    OMEGA6_LA = "omega6_la"
    OMEGA6_AA = "omega6_aa"


OMEGA3_COMPONENTS = frozenset(
    {
        NutrientComponent.OMEGA3_ALA,
        NutrientComponent.OMEGA3_EPA,
        NutrientComponent.OMEGA3_DHA,
    }
)
OMEGA6_COMPONENTS = frozenset(
    {NutrientComponent.OMEGA6_LA, NutrientComponent.OMEGA6_AA}
)


@dataclass(frozen=True)
class NutrientAmount:
    """A single nutrient value per 100 g as stored by a database."""

    component: NutrientComponent
    value: float


@dataclass(frozen=True)
class NutrientSummary:
    """Key nutrients for a food, per 100 g unless scaled."""

    fructose: float = 0.0
    omega3: float = 0.0
    omega6: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    calories: float = 0.0
    iron: float = 0.0
    fiber: float = 0.0

    def scaled(self, factor: float) -> "NutrientSummary":
        """Return every value multiplied by ``factor``."""
        return NutrientSummary(
            fructose=self.fructose * factor,
            omega3=self.omega3 * factor,
            omega6=self.omega6 * factor,
            protein=self.protein * factor,
            carbs=self.carbs * factor,
            fat=self.fat * factor,
            calories=self.calories * factor,
            iron=self.iron * factor,
            fiber=self.fiber * factor,
        )

    def plus(self, other: "NutrientSummary") -> "NutrientSummary":
        """Return the element-wise sum with ``other``."""
        return NutrientSummary(
            fructose=self.fructose + other.fructose,
            omega3=self.omega3 + other.omega3,
            omega6=self.omega6 + other.omega6,
            protein=self.protein + other.protein,
            carbs=self.carbs + other.carbs,
            fat=self.fat + other.fat,
            calories=self.calories + other.calories,
            iron=self.iron + other.iron,
            fiber=self.fiber + other.fiber,
        )


EMPTY_NUTRIENTS = NutrientSummary()


@dataclass(frozen=True)
class FoodMatch:
    """A food returned by a database search."""

    food_id: int
    description: str
    group: str | None


_MASS_UNITS_G = {
    "g": 1.0,
    "kg": 1000.0,
    "mg": 0.001,
    "oz": 28.3495,
    "lb": 453.592,
}

_UNIT_ALIASES = {
    "gram": "g",
    "gr": "g",
    "grams": "g",
    "kilogram": "kg",
    "milligram": "mg",
    "ounce": "oz",
    "lbs": "lb",
    "pound": "lb",
    "tablespoon": "tbsp",
    "tbs": "tbsp",
    "tbl": "tbsp",
    "teaspoon": "tsp",
    "millilitre": "ml",
    "milliliter": "ml",
    "litre": "l",
    "liter": "l",
    "cups": "cup",
    "slices": "slice",
    "cloves": "clove",
    "pieces": "piece",
    "pc": "piece",
    "fillets": "fillet",
    "servings": "serving",
}

_VOLUME_UNITS_ML = {
    "ml": 1.0,
    "l": 1000.0,
    "cup": 236.588,
    "tbsp": 236.588 / 16,
    "tsp": 236.588 / 48,
}

VULGAR_FRACTIONS = {
    "½": 1 / 2,
    "⅓": 1 / 3,
    "⅔": 2 / 3,
    "¼": 1 / 4,
    "¾": 3 / 4,
    "⅕": 1 / 5,
    "⅛": 1 / 8,
    "⅜": 3 / 8,
    "⅝": 5 / 8,
    "⅞": 7 / 8,
}

# Decimal, "1/2", mixed "1 1/2", or a vulgar fraction with an optional whole part.
QUANTITY = (
    rf"(?:\d+\s+\d+\s*/\s*\d+|\d*\s*[{''.join(VULGAR_FRACTIONS)}]"
    r"|\d+(?:\.\d+)?(?:\s*/\s*\d+)?)"
)

_QUANTITY_PATTERN = re.compile(rf"^\s*({QUANTITY})\s*([a-zA-Z]*)")


def normalize_unit(unit: str) -> str:
    """Normalise a free-text unit to a short canonical token."""
    token = unit.strip().lower().rstrip(".")
    if token in _UNIT_ALIASES:
        return _UNIT_ALIASES[token]
    if token.endswith("s") and token[:-1] in _UNIT_ALIASES:
        return _UNIT_ALIASES[token[:-1]]
    if token.endswith("s") and token[:-1] in _MASS_UNITS_G:
        return token[:-1]
    return token


def grams_per_mass_unit(unit: str) -> float | None:
    """Return grams per unit for mass units, else None."""
    return _MASS_UNITS_G.get(normalize_unit(unit))


def millilitres_per_volume_unit(unit: str) -> float | None:
    """Return millilitres per unit for volume units, else None."""
    return _VOLUME_UNITS_ML.get(normalize_unit(unit))


def parse_quantity(text: str) -> float | None:
    """Parse a decimal, ``1/2``, a mixed number like ``1 1/2``, or ``½``."""
    cleaned = re.sub(r"\s*/\s*", "/", text.strip())
    fraction = 0.0
    if cleaned and cleaned[-1] in VULGAR_FRACTIONS:
        fraction = VULGAR_FRACTIONS[cleaned[-1]]
        cleaned = cleaned[:-1].strip()
        if not cleaned:
            return fraction

    parts = cleaned.split()
    if len(parts) == 2 and not fraction and "/" in parts[1] and "/" not in parts[0]:
        whole, part = _parse_number(parts[0]), _parse_number(parts[1])
        if whole is None or part is None:
            return None
        return whole + part
    if len(parts) != 1:
        return None
    value = _parse_number(parts[0])
    if value is None:
        return None
    return value + fraction


def _parse_number(token: str) -> float | None:
    if "/" in token:
        numerator, _, denominator = token.partition("/")
        try:
            return float(numerator) / float(denominator)
        except (ValueError, ZeroDivisionError):
            return None
    try:
        return float(token)
    except ValueError:
        return None


@dataclass(frozen=True)
class Measure:
    """A household measure with the gram weight of its described quantity."""

    measure_id: int
    description: str
    gram_weight: float

    @property
    def quantity(self) -> float:
        """Leading quantity of the description, defaulting to 1."""
        match = _QUANTITY_PATTERN.match(self.description)
        if match:
            value = parse_quantity(match.group(1))
            if value and value > 0:
                return value
        return 1.0

    @property
    def unit(self) -> str:
        """Canonical unit token of the description, e.g. ``cup``."""
        match = _QUANTITY_PATTERN.match(self.description)
        if match and match.group(2):
            return normalize_unit(match.group(2))
        words = re.findall(r"[a-zA-Z]+", self.description)
        return normalize_unit(words[0]) if words else ""

    @property
    def grams_per_unit(self) -> float:
        """Grams for one unit of this measure."""
        return self.gram_weight / self.quantity
