"""Supabase implementation of the Canadian Nutrient File database."""

import asyncio
from dataclasses import dataclass

from supabase import Client

from meal_engine.domain.nutrition import (
    FoodMatch,
    Measure,
    NutrientAmount,
    NutrientComponent,
)
from meal_engine.services.nutrients import NutrientDatabase

CNF_NUTRIENT_IDS = {
    203: NutrientComponent.PROTEIN,
    204: NutrientComponent.FAT,
    205: NutrientComponent.CARBOHYDRATE,
    208: NutrientComponent.ENERGY_KCAL,
    291: NutrientComponent.FIBER,
    212: NutrientComponent.FRUCTOSE,
    303: NutrientComponent.IRON,
    851: NutrientComponent.OMEGA3_ALA,
    629: NutrientComponent.OMEGA3_EPA,
    631: NutrientComponent.OMEGA3_DHA,
    618: NutrientComponent.OMEGA6_LA,
    620: NutrientComponent.OMEGA6_AA,
}


@dataclass
class SupabaseCnfDatabase(NutrientDatabase):
    """CNF tables hosted in Supabase.

    The Supabase client is synchronous, so each query runs in a worker thread.
    """

    client: Client

    async def search(self, term: str, limit: int) -> list[FoodMatch]:
        """Search food descriptions case-insensitively."""
        return await asyncio.to_thread(self._search, term, limit)

    async def nutrient_amounts(self, food_id: int) -> list[NutrientAmount]:
        """Return tracked nutrient values per 100 g."""
        return await asyncio.to_thread(self._nutrient_amounts, food_id)

    async def measures(self, food_id: int) -> list[Measure]:
        """Return conversion factors as gram-weighted measures."""
        return await asyncio.to_thread(self._measures, food_id)

    def _search(self, term: str, limit: int) -> list[FoodMatch]:
        response = (
            self.client.table("FOOD_NAME")
            .select("FoodID, FoodDescription, FOOD_GROUP!inner(FoodGroupName)")
            .ilike("FoodDescription", f"%{term}%")
            .limit(limit)
            .execute()
        )
        return [_parse_food(row) for row in response.data or []]

    def _nutrient_amounts(self, food_id: int) -> list[NutrientAmount]:
        response = (
            self.client.table("NUTRIENT_AMOUNT")
            .select("NutrientID, NutrientValue")
            .eq("FoodID", food_id)
            .in_("NutrientID", list(CNF_NUTRIENT_IDS))
            .execute()
        )
        amounts: list[NutrientAmount] = []
        for row in response.data or []:
            component = CNF_NUTRIENT_IDS.get(row.get("NutrientID"))
            value = row.get("NutrientValue")
            if component is None or value is None:
                continue
            amounts.append(NutrientAmount(component=component, value=float(value)))
        return amounts

    def _measures(self, food_id: int) -> list[Measure]:
        response = (
            self.client.table("CONVERSION_FACTOR")
            .select(
                "MeasureID, ConversionFactorValue, "
                "MEASURE_NAME!inner(MeasureDescription)"
            )
            .eq("FoodID", food_id)
            .execute()
        )
        return [_parse_measure(row) for row in response.data or []]


def _parse_food(row: dict[str, object]) -> FoodMatch:
    """Parse a FOOD_NAME row into a food match."""
    group = row.get("FOOD_GROUP") or {}
    return FoodMatch(
        food_id=int(row["FoodID"]),
        description=str(row.get("FoodDescription", "")),
        group=group.get("FoodGroupName") if isinstance(group, dict) else None,
    )


def _parse_measure(row: dict[str, object]) -> Measure:
    """Parse a CONVERSION_FACTOR row.

    CNF conversion factors scale per-100 g values, so the measure's gram
    weight is the factor times 100.
    """
    measure_name = row.get("MEASURE_NAME") or {}
    description = (
        measure_name.get("MeasureDescription", "")
        if isinstance(measure_name, dict)
        else ""
    )
    return Measure(
        measure_id=int(row["MeasureID"]),
        description=str(description),
        gram_weight=float(row.get("ConversionFactorValue", 0.0)) * 100,
    )
