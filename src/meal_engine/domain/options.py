"""Caller-supplied generation options and profile facts."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class MealType(str, Enum):
    """Kind of meal requested."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"
    DESSERT = "dessert"


class GenerationType(str, Enum):
    """Scope of a generation request."""

    SINGLE = "single"
    FULL_DAY = "full_day"
    FULL_WEEK = "full_week"


class DietaryPreset(str, Enum):
    """Preset diets, all layered on top of the 2 Rules."""

    TWO_RULE = "2 Rule"
    KETO = "Keto + 2 Rule"
    MEDITERRANEAN = "Mediterranean + 2 Rule"
    PALEO = "Paleo + 2 Rule"
    CARNIVORE = "Carnivore + 2 Rule"

    @property
    def base_diet(self) -> str | None:
        """Diet name without the 2 Rule suffix, or None for the bare preset."""
        if self is DietaryPreset.TWO_RULE:
            return None
        return self.value.replace(" + 2 Rule", "")


class IronLevel(str, Enum):
    """User's reported iron status."""

    NORMAL = "normal"
    HIGH = "high"
    LOW = "low"


class Sex(str, Enum):
    """Sex used for calorie estimation."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class WeightUnit(str, Enum):
    """Unit for body weight."""

    KG = "kg"
    LBS = "lbs"


class Medication(BaseModel):
    """A medication the meal must not interact with."""

    model_config = ConfigDict(frozen=True)

    name: str
    dose: str = ""
    rxnorm_id: str | None = None


class Omega3Supplement(BaseModel):
    """Daily omega-3 supplement dose in milligrams."""

    model_config = ConfigDict(frozen=True)

    takes_supplement: bool = True
    epa_mg: float = Field(default=0.0, ge=0.0)
    dha_mg: float = Field(default=0.0, ge=0.0)
    ala_mg: float = Field(default=0.0, ge=0.0)

    @property
    def daily_total_g(self) -> float:
        """Total daily omega-3 from the supplement in grams."""
        if not self.takes_supplement:
            return 0.0
        return (self.epa_mg + self.dha_mg + self.ala_mg) / 1000

    def describe(self) -> str:
        """Describe the dose for a prompt."""
        return (
            f"{self.epa_mg:g} mg EPA, {self.dha_mg:g} mg DHA, {self.ala_mg:g} mg ALA"
        )


class GenerationOptions(BaseModel):
    """Immutable description of what to generate and under which constraints."""

    model_config = ConfigDict(frozen=True)

    generation_type: GenerationType = GenerationType.SINGLE
    meal_type: MealType | None = None
    portions: int = Field(default=1, ge=1)
    include_instructions: bool = True
    include_macros: bool = True
    include_heavy_metals: bool = False
    protein_goal: float | None = Field(default=None, gt=0)
    protein_goal_per_day: bool = False
    use_grass_fed: bool = True
    allergies: tuple[str, ...] = ()
    dietary_preferences: tuple[str, ...] = ()
    dietary_preset: DietaryPreset = DietaryPreset.TWO_RULE
    iron_level: IronLevel = IronLevel.NORMAL
    medications: tuple[Medication, ...] = ()
    weight: float = Field(default=70.0, gt=0)
    weight_unit: WeightUnit = WeightUnit.KG
    age: int = Field(default=40, ge=0)
    sex: Sex = Sex.OTHER
    has_chronic_condition: bool = False
    omega3_supplement: Omega3Supplement | None = None
    previous_meals: tuple[str, ...] = ()

    @property
    def is_full_day(self) -> bool:
        """True when limits apply to a whole day rather than one meal."""
        return self.generation_type is not GenerationType.SINGLE

    def supplement_omega3_g(self, meals_per_day: int) -> float:
        """Supplement omega-3 in grams attributed to one meal."""
        if self.omega3_supplement is None:
            return 0.0
        daily = self.omega3_supplement.daily_total_g
        if self.is_full_day:
            return daily
        return daily / meals_per_day
