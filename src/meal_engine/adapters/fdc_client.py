"""USDA FoodData Central API client and nutrient database adapter."""

import asyncio
from dataclasses import dataclass, field
from typing import Protocol

import httpx

from meal_engine.domain.nutrition import (
    FoodMatch,
    Measure,
    NutrientAmount,
    NutrientComponent,
)
from meal_engine.services.nutrients import NutrientDatabase

FDC_NUTRIENT_IDS = {
    1003: NutrientComponent.PROTEIN,
    1004: NutrientComponent.FAT,
    1005: NutrientComponent.CARBOHYDRATE,
    1008: NutrientComponent.ENERGY_KCAL,
    1079: NutrientComponent.FIBER,
    1089: NutrientComponent.IRON,
    1012: NutrientComponent.FRUCTOSE,
    1404: NutrientComponent.OMEGA3_ALA,
    1278: NutrientComponent.OMEGA3_EPA,
    1272: NutrientComponent.OMEGA3_DHA,
    1269: NutrientComponent.OMEGA6_LA,
    1271: NutrientComponent.OMEGA6_AA,
}

_FOOD_MEMO_SIZE = 128

_UNDETERMINED_UNIT = "undetermined"


class FdcClient(Protocol):
    """Interface for FoodData Central API interactions."""

    async def search_foods(
        self,
        query: str,
        page_size: int = 10,
        data_types: tuple[str, ...] = (),
    ) -> dict[str, object]:
        """Search foods by query and return raw API data."""

    async def get_food(self, fdc_id: int) -> dict[str, object]:
        """Fetch a food by FDC id and return raw API data."""


@dataclass
class HttpxFdcClient(FdcClient):
    """HTTPX-backed FDC client."""

    api_key: str
    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, api_key: str, base_url: str) -> "HttpxFdcClient":
        """Create an FDC client with a managed httpx session."""
        return cls(api_key=api_key, base_url=base_url, http_client=httpx.AsyncClient())

    async def search_foods(
        self,
        query: str,
        page_size: int = 10,
        data_types: tuple[str, ...] = (),
    ) -> dict[str, object]:
        """Search foods by query."""
        url = f"{self.base_url}/foods/search"
        body: dict[str, object] = {"query": query, "pageSize": page_size}
        if data_types:
            body["dataType"] = list(data_types)
        response = await self.http_client.post(
            url,
            params={"api_key": self.api_key},
            json=body,
            timeout=15,
        )
        response.raise_for_status()
        return response.json()

    async def get_food(self, fdc_id: int) -> dict[str, object]:
        """Fetch a food by FDC id."""
        url = f"{self.base_url}/food/{fdc_id}"
        response = await self.http_client.get(
            url,
            params={"api_key": self.api_key},
            timeout=15,
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


@dataclass
class FdcNutrientDatabase(NutrientDatabase):
    """Nutrient database backed by FoodData Central."""

    client: FdcClient
    data_types: tuple[str, ...] = ("Foundation", "SR Legacy")
    _foods: dict[int, "asyncio.Task[dict[str, object]]"] = field(
        default_factory=dict, init=False, repr=False
    )

    async def search(self, term: str, limit: int) -> list[FoodMatch]:
        """Search FDC and map results to food matches."""
        payload = await self.client.search_foods(
            term, page_size=limit, data_types=self.data_types
        )
        return [
            FoodMatch(
                food_id=int(food["fdcId"]),
                description=str(food.get("description", "")),
                group=food.get("foodCategory") or food.get("dataType"),
            )
            for food in payload.get("foods", [])[:limit]
        ]

    async def nutrient_amounts(self, food_id: int) -> list[NutrientAmount]:
        """Return the tracked nutrients of an FDC food per 100 g."""
        payload = await self._food(food_id)
        return _extract_nutrients(payload.get("foodNutrients", []))

    async def measures(self, food_id: int) -> list[Measure]:
        """Return FDC food portions as measures."""
        payload = await self._food(food_id)
        measures: list[Measure] = []
        for portion in payload.get("foodPortions", []):
            gram_weight = portion.get("gramWeight")
            if not isinstance(gram_weight, int | float) or gram_weight <= 0:
                continue
            measures.append(
                Measure(
                    measure_id=int(portion.get("id", len(measures))),
                    description=_portion_description(portion),
                    gram_weight=float(gram_weight),
                )
            )
        return measures

    async def _food(self, food_id: int) -> dict[str, object]:
        """Fetch a food once; nutrients and portions share the payload."""
        task = self._foods.get(food_id)
        if task is None or (
            task.done() and (task.cancelled() or task.exception() is not None)
        ):
            task = asyncio.ensure_future(self.client.get_food(food_id))
            self._foods[food_id] = task
            while len(self._foods) > _FOOD_MEMO_SIZE:
                del self._foods[next(iter(self._foods))]
        return await asyncio.shield(task)


def _extract_nutrients(food_nutrients: list[dict[str, object]]) -> list[NutrientAmount]:
    """Map FDC nutrient rows onto tracked components."""
    amounts: list[NutrientAmount] = []
    for nutrient in food_nutrients:
        nutrient_info = nutrient.get("nutrient") or {}
        nutrient_id = nutrient_info.get("id") or nutrient.get("nutrientId")
        component = FDC_NUTRIENT_IDS.get(nutrient_id)
        value = nutrient.get("amount", nutrient.get("value"))
        if component is None or value is None:
            continue
        amounts.append(NutrientAmount(component=component, value=float(value)))
    return amounts


def _portion_description(portion: dict[str, object]) -> str:
    """Build a ``<quantity> <unit>`` description from an FDC portion."""
    amount = portion.get("amount") or 1
    unit_info = portion.get("measureUnit") or {}
    unit_name = str(unit_info.get("name") or "")
    if unit_name and unit_name != _UNDETERMINED_UNIT:
        unit = str(unit_info.get("abbreviation") or unit_name)
    else:
        unit = str(portion.get("modifier") or portion.get("portionDescription") or "")
    return f"{amount:g} {unit}".strip() if isinstance(amount, int | float) else unit
