"""Tests for the nutrient gateway."""

import asyncio
from dataclasses import dataclass

import pytest

from meal_engine.domain.errors import ServiceTimeoutError, ServiceUnavailableError
from meal_engine.domain.nutrition import (
    FoodMatch,
    Measure,
    NutrientAmount,
    NutrientComponent,
)
from meal_engine.services.nutrients import (
    NutrientDatabase,
    NutrientGateway,
    search_term,
)


@dataclass
class SlowDatabase(NutrientDatabase):
    delay: float = 1.0

    async def search(self, term: str, limit: int) -> list[FoodMatch]:
        await asyncio.sleep(self.delay)
        return []

    async def nutrient_amounts(self, food_id: int) -> list[NutrientAmount]:
        return []

    async def measures(self, food_id: int) -> list[Measure]:
        return []


def test_search_uses_cache(gateway, pantry) -> None:
    first = asyncio.run(gateway.search_food("salmon"))
    second = asyncio.run(gateway.search_food("Salmon"))

    assert first[0].food_id == 1
    assert second == first
    assert pantry.searches == ["salmon"]
    assert gateway.cache.get("search:salmon:1") == first
    assert gateway.cache.get("search:unicorn:1") is None


def test_search_term_drops_parentheses_and_qualifiers() -> None:
    assert search_term("Salmon (wild caught), skin on") == "Salmon"
    assert search_term("  baby   spinach ") == "baby spinach"
    assert search_term("(optional)") == ""


def test_search_unknown_food_returns_empty(gateway, pantry) -> None:
    assert asyncio.run(gateway.search_food("unicorn meat")) == []
    assert asyncio.run(gateway.search_food("(to taste)")) == []
    assert pantry.searches == ["unicorn meat"]


def test_key_nutrients_sum_omega_species(gateway, pantry) -> None:
    pantry.foods[50] = "Sardines, canned"
    pantry.amounts[50] = [
        NutrientAmount(NutrientComponent.OMEGA3_ALA, 0.5),
        NutrientAmount(NutrientComponent.OMEGA3_EPA, 0.4),
        NutrientAmount(NutrientComponent.OMEGA3_DHA, 0.6),
        NutrientAmount(NutrientComponent.OMEGA6_LA, 0.3),
        NutrientAmount(NutrientComponent.OMEGA6_AA, 0.2),
        NutrientAmount(NutrientComponent.PROTEIN, 25.0),
    ]

    summary = asyncio.run(gateway.key_nutrients(50))

    assert summary.omega3 == pytest.approx(1.5)
    assert summary.omega6 == pytest.approx(0.5)
    assert summary.protein == 25.0
    assert summary.fructose == 0.0


def test_nutrients_for_amount_scales_per_100g(gateway, pantry) -> None:
    nutrients, grams = asyncio.run(gateway.nutrients_for_amount(1, 150, "g"))

    assert grams == 150
    assert nutrients.protein == pytest.approx(30.0)
    assert nutrients.omega3 == pytest.approx(3.0)
    assert nutrients.omega6 == pytest.approx(1.5)

    asyncio.run(gateway.nutrients_for_amount(1, 50, "g"))
    assert pantry.nutrient_lookups == [1]


def test_grams_for_uses_mass_units_and_measures(gateway, pantry) -> None:
    pantry.food_measures[2] = [
        Measure(measure_id=20, description="1/2 cup", gram_weight=15.0)
    ]

    assert asyncio.run(gateway.grams_for(1, 2, "oz")) == pytest.approx(56.699)
    assert asyncio.run(gateway.grams_for(1, 0.5, "kg")) == 500.0
    assert asyncio.run(gateway.grams_for(5, 2, "medium")) == 360.0
    assert asyncio.run(gateway.grams_for(5, 1, "whole")) == 180.0
    assert asyncio.run(gateway.grams_for(2, 2, "cups")) == 60.0


def test_size_words_use_the_first_measure(gateway) -> None:
    assert asyncio.run(gateway.grams_for(5, 2, "large")) == 360.0
    assert asyncio.run(gateway.grams_for(5, 1, "small")) == 180.0
    assert asyncio.run(gateway.grams_for(5, 3, "slices")) == 540.0


def test_volume_units_convert_through_any_volume_measure(gateway, pantry) -> None:
    pantry.food_measures[2] = [
        Measure(measure_id=20, description="1/2 cup", gram_weight=15.0)
    ]

    assert asyncio.run(gateway.grams_for(2, 2, "tbsp")) == pytest.approx(3.75)
    assert asyncio.run(gateway.grams_for(2, 250, "ml")) == pytest.approx(31.7, rel=1e-3)


def test_grams_for_falls_back_to_grams(gateway) -> None:
    assert asyncio.run(gateway.grams_for(1, 50, "cup")) == 50
    assert asyncio.run(gateway.grams_for(5, 3, "pinch")) == 3


def test_convert_between_units(gateway) -> None:
    assert asyncio.run(gateway.convert(5, 1, "medium", "g")) == 180.0
    assert asyncio.run(gateway.convert(5, 90, "g", "medium")) == 0.5

    with pytest.raises(ValueError):
        asyncio.run(gateway.convert(5, 1, "cup", "g"))


def test_has_complete_data(gateway, pantry) -> None:
    pantry.add_food(60, "Walnuts", fructose=0.1, omega3=9.0, omega6=38.0)

    assert asyncio.run(gateway.has_complete_data(60)) is True
    assert asyncio.run(gateway.has_complete_data(1)) is False


def test_database_failure_is_service_unavailable(gateway, pantry) -> None:
    pantry.error = RuntimeError("connection refused")

    with pytest.raises(ServiceUnavailableError):
        asyncio.run(gateway.search_food("salmon"))


def test_slow_database_times_out() -> None:
    gateway = NutrientGateway(database=SlowDatabase(), timeout_seconds=0.01)

    with pytest.raises(ServiceTimeoutError):
        asyncio.run(gateway.search_food("salmon"))


def test_scoped_gateway_has_fresh_cache(gateway, pantry) -> None:
    asyncio.run(gateway.search_food("salmon"))
    scoped = gateway.scoped()

    asyncio.run(scoped.search_food("salmon"))

    assert scoped.database is gateway.database
    assert scoped.cache is not gateway.cache
    assert pantry.searches == ["salmon", "salmon"]
