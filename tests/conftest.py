"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field

import pytest

from meal_engine.config import Settings
from meal_engine.domain.nutrition import (
    FoodMatch,
    Measure,
    NutrientAmount,
    NutrientComponent,
)
from meal_engine.services.composer import RequestComposer
from meal_engine.services.generation import MealGenerationService
from meal_engine.services.nutrients import NutrientDatabase, NutrientGateway
from meal_engine.services.swaps import IngredientSwapService
from meal_engine.services.text_generation import (
    TextGenerationClient,
    TextGenerationService,
)

_SUMMARY_COMPONENTS = {
    "fructose": NutrientComponent.FRUCTOSE,
    "omega3": NutrientComponent.OMEGA3_ALA,
    "omega6": NutrientComponent.OMEGA6_LA,
    "protein": NutrientComponent.PROTEIN,
    "carbs": NutrientComponent.CARBOHYDRATE,
    "fat": NutrientComponent.FAT,
    "calories": NutrientComponent.ENERGY_KCAL,
    "iron": NutrientComponent.IRON,
    "fiber": NutrientComponent.FIBER,
}


@dataclass
class FakeTextClient(TextGenerationClient):
    """Fake text client replaying queued replies and recording prompts."""

    replies: list[str] = field(default_factory=list)
    calls: list[dict[str, object]] = field(default_factory=list)
    error: Exception | None = None
    delay: float = 0.0

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        temperature: float | None,
        store: bool,
        system_prompt: str,
        user_prompt: str,
        max_output_tokens: int,
    ) -> str:
        self.calls.append(
            {
                "model": model,
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
                "max_output_tokens": max_output_tokens,
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if len(self.replies) > 1:
            return self.replies.pop(0)
        return self.replies[0] if self.replies else ""

    @property
    def prompts(self) -> list[str]:
        return [str(call["user_prompt"]) for call in self.calls]


@dataclass
class InMemoryNutrientDatabase(NutrientDatabase):
    """In-memory nutrient database with substring search."""

    foods: dict[int, str] = field(default_factory=dict)
    amounts: dict[int, list[NutrientAmount]] = field(default_factory=dict)
    food_measures: dict[int, list[Measure]] = field(default_factory=dict)
    searches: list[str] = field(default_factory=list)
    nutrient_lookups: list[int] = field(default_factory=list)
    error: Exception | None = None

    def add_food(
        self,
        food_id: int,
        description: str,
        measures: tuple[Measure, ...] = (),
        **per_100g: float,
    ) -> None:
        self.foods[food_id] = description
        self.amounts[food_id] = [
            NutrientAmount(component=_SUMMARY_COMPONENTS[name], value=value)
            for name, value in per_100g.items()
        ]
        self.food_measures[food_id] = list(measures)

    async def search(self, term: str, limit: int) -> list[FoodMatch]:
        self.searches.append(term)
        if self.error is not None:
            raise self.error
        return [
            FoodMatch(food_id=food_id, description=description, group=None)
            for food_id, description in self.foods.items()
            if term.lower() in description.lower()
        ][:limit]

    async def nutrient_amounts(self, food_id: int) -> list[NutrientAmount]:
        self.nutrient_lookups.append(food_id)
        return self.amounts.get(food_id, [])

    async def measures(self, food_id: int) -> list[Measure]:
        return self.food_measures.get(food_id, [])


@pytest.fixture
def settings() -> Settings:
    return Settings(
        openai_api_key="openai-key",
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        fdc_api_key="fdc-key",
    )


@pytest.fixture
def text_client() -> FakeTextClient:
    return FakeTextClient()


@pytest.fixture
def text_service(text_client: FakeTextClient) -> TextGenerationService:
    return TextGenerationService(client=text_client, model="test-model")


@pytest.fixture
def pantry() -> InMemoryNutrientDatabase:
    """Database with a few foods using round per-100 g values."""
    database = InMemoryNutrientDatabase()
    database.add_food(
        1,
        "Salmon, Atlantic, raw",
        protein=20.0,
        fat=12.0,
        calories=200.0,
        omega3=2.0,
        omega6=1.0,
        iron=0.4,
    )
    database.add_food(
        2,
        "Spinach, raw",
        protein=3.0,
        carbs=4.0,
        fiber=2.0,
        calories=23.0,
        fructose=0.5,
        omega6=0.5,
        iron=2.7,
    )
    database.add_food(3, "Olive oil", fat=100.0, calories=880.0, omega6=40.0)
    database.add_food(4, "Sunflower oil", fat=100.0, calories=880.0, omega6=50.0)
    database.add_food(
        5,
        "Apple, raw, with skin",
        measures=(Measure(measure_id=10, description="1 medium", gram_weight=180.0),),
        carbs=14.0,
        fiber=2.0,
        calories=52.0,
        fructose=6.0,
    )
    database.add_food(
        6,
        "Mackerel, Atlantic, raw",
        protein=18.0,
        fat=14.0,
        calories=205.0,
        omega3=2.5,
        omega6=0.5,
    )
    database.add_food(
        7,
        "Rice, white, cooked",
        protein=2.7,
        carbs=28.0,
        fiber=0.4,
        calories=130.0,
    )
    return database


@pytest.fixture
def gateway(pantry: InMemoryNutrientDatabase) -> NutrientGateway:
    return NutrientGateway(database=pantry)


@pytest.fixture
def generation_service(
    text_service: TextGenerationService, gateway: NutrientGateway
) -> MealGenerationService:
    return MealGenerationService(
        text_service=text_service, gateway=gateway, composer=RequestComposer()
    )


@pytest.fixture
def swap_service(
    text_service: TextGenerationService, gateway: NutrientGateway
) -> IngredientSwapService:
    return IngredientSwapService(text_service=text_service, gateway=gateway)
