"""Nutrient gateway over an authoritative nutrient database."""

import asyncio
import dataclasses
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, TypeVar

from meal_engine.domain.errors import ServiceTimeoutError, ServiceUnavailableError
from meal_engine.domain.nutrition import (
    OMEGA3_COMPONENTS,
    OMEGA6_COMPONENTS,
    FoodMatch,
    Measure,
    NutrientAmount,
    NutrientComponent,
    NutrientSummary,
    grams_per_mass_unit,
    millilitres_per_volume_unit,
    normalize_unit,
)
from meal_engine.services.cache import Cache, InMemoryCache

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

_logger = logging.getLogger(__name__)

T = TypeVar("T")

# Count and size words take the first measure when none names them.
_COUNT_UNITS = frozenset(
    {
        "serving", "portion", "whole", "each", "large", "medium", "small",
        "slice", "clove", "piece", "fillet", "can", "cans", "stalk", "stalks",
        "sprig", "sprigs", "bunch", "head", "leaf", "leaves", "handful",
    }
)


class NutrientDatabase(Protocol):
    """Interface for an authoritative nutrient database."""

    async def search(self, term: str, limit: int) -> list[FoodMatch]:
        """Return foods whose description matches ``term``."""

    async def nutrient_amounts(self, food_id: int) -> list[NutrientAmount]:
        """Return per-100 g nutrient values for a food."""

    async def measures(self, food_id: int) -> list[Measure]:
        """Return household measures available for a food."""


@dataclass
class NutrientGateway:
    """Food lookups, nutrient aggregation and unit conversion."""

    database: NutrientDatabase
    cache: Cache = field(default_factory=InMemoryCache)
    timeout_seconds: float = 30.0
    debug: bool = False

    def scoped(self) -> "NutrientGateway":
        """Return a gateway sharing the database but with a fresh cache."""
        return dataclasses.replace(self, cache=InMemoryCache())

    async def search_food(self, name: str, limit: int = 1) -> list[FoodMatch]:
        """Search the database; an empty list means the food is unknown."""
        term = search_term(name)
        if not term:
            return []
        cache_key = f"search:{term.lower()}:{limit}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, list):
            return cached

        matches = await self._call(
            lambda: self.database.search(term, limit), action=f"search:{term}"
        )
        self.cache.set(cache_key, matches)
        if self.debug:
            _logger.info("Nutrient search: term=%s results=%s", term, len(matches))
        return matches

    async def key_nutrients(self, food_id: int) -> NutrientSummary:
        """Return per-100 g key nutrients with omega sub-species summed."""
        cache_key = f"nutrients:{food_id}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, NutrientSummary):
            return cached

        amounts = await self._call(
            lambda: self.database.nutrient_amounts(food_id),
            action=f"nutrients:{food_id}",
        )
        summary = summarize_nutrients(amounts)
        self.cache.set(cache_key, summary)
        return summary

    async def measures(self, food_id: int) -> list[Measure]:
        """Return the unit conversion measures for a food."""
        cache_key = f"measures:{food_id}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, list):
            return cached

        measures = await self._call(
            lambda: self.database.measures(food_id), action=f"measures:{food_id}"
        )
        self.cache.set(cache_key, measures)
        return measures

    async def convert(
        self, food_id: int, amount: float, from_unit: str, to_unit: str
    ) -> float:
        """Convert an amount of a food between two units via grams."""
        from_factor = await self._grams_per_unit(food_id, from_unit)
        to_factor = await self._grams_per_unit(food_id, to_unit)
        if from_factor is None or to_factor is None:
            raise ValueError(
                f"No conversion between {from_unit!r} and {to_unit!r} "
                f"for food {food_id}"
            )
        return amount * from_factor / to_factor

    async def grams_for(self, food_id: int, amount: float, unit: str) -> float:
        """Resolve an amount to grams, treating unknown units as grams."""
        factor = await self._grams_per_unit(food_id, unit)
        if factor is None:
            if self.debug:
                _logger.info(
                    "No measure for unit=%s food_id=%s; assuming grams", unit, food_id
                )
            return amount
        return amount * factor

    async def nutrients_for_amount(
        self, food_id: int, amount: float, unit: str
    ) -> tuple[NutrientSummary, float]:
        """Return nutrients scaled to ``amount`` ``unit`` and the grams used."""
        base, grams = await asyncio.gather(
            self.key_nutrients(food_id), self.grams_for(food_id, amount, unit)
        )
        return base.scaled(grams / 100.0), grams

    async def has_complete_data(self, food_id: int) -> bool:
        """Return True when fructose, omega-3 and omega-6 are all present."""
        summary = await self.key_nutrients(food_id)
        return summary.fructose != 0 and summary.omega3 != 0 and summary.omega6 != 0

    async def _grams_per_unit(self, food_id: int, unit: str) -> float | None:
        mass_factor = grams_per_mass_unit(unit)
        if mass_factor is not None:
            return mass_factor
        measures = await self.measures(food_id)
        if not measures:
            return None
        canonical = normalize_unit(unit)
        for measure in measures:
            if measure.unit == canonical:
                return measure.grams_per_unit
        millilitres = millilitres_per_volume_unit(canonical)
        if millilitres is not None:
            for measure in measures:
                measure_ml = millilitres_per_volume_unit(measure.unit)
                if measure_ml is not None:
                    return measure.grams_per_unit * millilitres / measure_ml
            return None
        if canonical in _COUNT_UNITS:
            return measures[0].gram_weight
        return None

    async def _call(self, func: "Callable[[], Awaitable[T]]", *, action: str) -> T:
        """Run a database call under the gateway timeout."""
        try:
            async with asyncio.timeout(self.timeout_seconds):
                return await func()
        except TimeoutError as exc:
            _logger.warning(
                "Nutrient %s timed out after %ss", action, self.timeout_seconds
            )
            raise ServiceTimeoutError(
                f"Nutrient database timed out during {action}"
            ) from exc
        except Exception as exc:
            _logger.warning(
                "Nutrient %s failed (status=%s): %s",
                action,
                _status_code_from_exception(exc),
                exc,
            )
            raise ServiceUnavailableError(
                f"Nutrient database request failed during {action}"
            ) from exc


def summarize_nutrients(amounts: list[NutrientAmount]) -> NutrientSummary:
    """Fold raw nutrient rows into a summary.

    All omega-3 species (ALA, EPA, DHA) are added into ``omega3`` and all
    omega-6 species (LA, AA) into ``omega6``.
    """
    values: dict[str, float] = {
        "fructose": 0.0,
        "omega3": 0.0,
        "omega6": 0.0,
        "protein": 0.0,
        "carbs": 0.0,
        "fat": 0.0,
        "calories": 0.0,
        "iron": 0.0,
        "fiber": 0.0,
    }
    for amount in amounts:
        if amount.component in OMEGA3_COMPONENTS:
            values["omega3"] += amount.value
        elif amount.component in OMEGA6_COMPONENTS:
            values["omega6"] += amount.value
        else:
            values[_SUMMARY_FIELDS[amount.component]] = amount.value
    return NutrientSummary(**values)


_SUMMARY_FIELDS = {
    NutrientComponent.FRUCTOSE: "fructose",
    NutrientComponent.PROTEIN: "protein",
    NutrientComponent.CARBOHYDRATE: "carbs",
    NutrientComponent.FAT: "fat",
    NutrientComponent.ENERGY_KCAL: "calories",
    NutrientComponent.IRON: "iron",
    NutrientComponent.FIBER: "fiber",
}


def search_term(name: str) -> str:
    """Reduce an ingredient name to a database search term."""
    term = re.sub(r"\([^)]*\)", " ", name)
    term = term.split(",", 1)[0]
    return " ".join(term.split())


def _status_code_from_exception(exc: Exception) -> str:
    """Extract HTTP status code from an exception, if available."""
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return str(status_code)
    return "n/a"
