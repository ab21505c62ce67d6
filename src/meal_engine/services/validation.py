"""Re-derives meal nutrients from the database and checks meal rules."""

import asyncio
import dataclasses
import logging
from dataclasses import dataclass

from meal_engine.domain.errors import ErrorKind
from meal_engine.domain.meals import (
    VALID,
    GeneratedMeal,
    Ingredient,
    ParsedMeal,
    ValidationResult,
)
from meal_engine.domain.nutrition import FoodMatch, NutrientSummary, parse_quantity
from meal_engine.domain.options import GenerationOptions
from meal_engine.domain.rules import (
    DEFAULT_POLICY,
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
from meal_engine.services.nutrients import NutrientGateway

_logger = logging.getLogger(__name__)


@dataclass
class MealValidator:
    """Replaces model-reported nutrients with database values and checks rules."""

    gateway: NutrientGateway
    policy: RulePolicy = DEFAULT_POLICY

    async def validate(
        self, parsed: ParsedMeal, options: GenerationOptions
    ) -> tuple[GeneratedMeal | None, ValidationResult]:
        """Resolve every ingredient, aggregate totals and run the checks.

        The first unknown ingredient rejects the meal before any nutrient
        values are fetched.
        """
        if not parsed.ingredients:
            return None, ValidationResult(
                valid=False,
                reason="No ingredients could be extracted from the response",
                kind=ErrorKind.PARSE_FAILURE,
            )

        matches = await self.match_all(parsed.ingredients)
        for ingredient, match in zip(parsed.ingredients, matches, strict=True):
            if match is None:
                return None, ValidationResult(
                    valid=False,
                    reason=f'Ingredient "{ingredient.name}" not found in database',
                    kind=ErrorKind.INGREDIENT_NOT_FOUND,
                )

        resolved = await asyncio.gather(
            *(
                self.resolve_ingredient(ingredient, match)
                for ingredient, match in zip(parsed.ingredients, matches, strict=True)
            )
        )
        meal = self.assemble(parsed, resolved, options)
        return meal, self.check(meal, options)

    async def resolve_advisory(
        self, parsed: ParsedMeal, options: GenerationOptions
    ) -> GeneratedMeal:
        """Aggregate what can be resolved without rejecting the meal.

        Ingredients missing from the database stay in the meal with zero
        nutrients; ``follows_2_rules`` is still computed.
        """
        matches = await self.match_all(parsed.ingredients)
        resolved = await asyncio.gather(
            *(
                self.resolve_ingredient(ingredient, match)
                if match is not None
                else _unresolved(ingredient)
                for ingredient, match in zip(parsed.ingredients, matches, strict=True)
            )
        )
        return self.assemble(parsed, resolved, options)

    async def match_all(
        self, ingredients: tuple[Ingredient, ...]
    ) -> list[FoodMatch | None]:
        """Search every ingredient; lookups are independent and run together."""
        results = await asyncio.gather(
            *(
                self.gateway.search_food(ingredient.name, 1)
                for ingredient in ingredients
            )
        )
        return [matches[0] if matches else None for matches in results]

    async def resolve_ingredient(
        self, ingredient: Ingredient, match: FoodMatch
    ) -> Ingredient:
        """Return the ingredient with database nutrients for its amount."""
        amount = parse_quantity(ingredient.amount)
        if amount is None:
            amount = 1.0
        nutrients, grams = await self.gateway.nutrients_for_amount(
            match.food_id, amount, ingredient.unit
        )
        if not await self.gateway.has_complete_data(match.food_id):
            _logger.debug(
                "Food %s (%s) lacks fructose or omega data",
                match.food_id,
                match.description,
            )
        return dataclasses.replace(
            ingredient,
            nutrients=nutrients,
            food_id=match.food_id,
            matched_description=match.description,
            grams=grams,
        )

    def assemble(
        self,
        parsed: ParsedMeal,
        ingredients: list[Ingredient],
        options: GenerationOptions,
    ) -> GeneratedMeal:
        """Build a meal whose totals come only from ``ingredients``."""
        totals = self.totals(ingredients, options)
        return GeneratedMeal(
            name=parsed.name,
            type=options.generation_type,
            meal_type=options.meal_type,
            ingredients=tuple(ingredients),
            instructions=parsed.instructions,
            heavy_metal_content=parsed.heavy_metal_content,
            portions=options.portions,
            reported=parsed.reported,
            **self._total_fields(totals, options),
        )

    def aggregate(
        self, meal: GeneratedMeal, options: GenerationOptions
    ) -> GeneratedMeal:
        """Recompute totals, ratio and rule flag from the meal's ingredients."""
        totals = self.totals(list(meal.ingredients), options)
        return dataclasses.replace(meal, **self._total_fields(totals, options))

    def totals(
        self, ingredients: list[Ingredient], options: GenerationOptions
    ) -> NutrientSummary:
        """Sum ingredient nutrients and add the supplement's omega-3 share."""
        total = NutrientSummary()
        for ingredient in ingredients:
            total = total.plus(ingredient.nutrients)
        supplement = options.supplement_omega3_g(self.policy.meals_per_day)
        if supplement:
            total = total.plus(NutrientSummary(omega3=supplement))
        return total

    def check(
        self, meal: GeneratedMeal, options: GenerationOptions
    ) -> ValidationResult:
        """Run fructose, omega, protein and net-carb checks in that order."""
        chronic = options.has_chronic_condition
        full_day = options.is_full_day

        if not fructose_valid(meal.total_fructose, chronic, full_day, self.policy):
            limit = fructose_limit(chronic, full_day, self.policy)
            who = "a chronic condition" if chronic else "a healthy individual"
            return _violation(
                f"Fructose content ({meal.total_fructose:.2f}g) exceeds limit of "
                f"{limit:.2f}g for {who}"
            )

        if not omega_ratio_valid(meal.omega3, meal.omega6, self.policy):
            return _violation(
                f"Omega ratio ({meal.omega_ratio}) outside acceptable range of "
                f"{self.policy.omega_band_label}"
            )

        required_protein = self._protein_floor(options)
        if required_protein is not None and meal.protein < required_protein:
            return _violation(
                f"Protein content ({meal.protein:.2f}g) below goal of "
                f"{round(required_protein, 2):g}g"
            )

        limit = net_carbs_limit(full_day, self.policy)
        if meal.net_carbs > limit:
            return _violation(
                f"Net carbs ({meal.net_carbs:.2f}g) exceed limit of {limit:g}g"
            )

        return VALID

    def _protein_floor(self, options: GenerationOptions) -> float | None:
        if not options.protein_goal:
            return None
        if options.protein_goal_per_day and not options.is_full_day:
            return options.protein_goal / self.policy.meals_per_day
        return options.protein_goal

    def _total_fields(
        self, totals: NutrientSummary, options: GenerationOptions
    ) -> dict[str, object]:
        return {
            "total_fructose": totals.fructose,
            "omega3": totals.omega3,
            "omega6": totals.omega6,
            "omega_ratio": omega_ratio(totals.omega3, totals.omega6),
            "protein": totals.protein,
            "carbs": totals.carbs,
            "fat": totals.fat,
            "calories": totals.calories,
            "iron_content": totals.iron,
            "fiber": totals.fiber,
            "net_carbs": net_carbs(totals.carbs, totals.fiber),
            "macronutrient_breakdown": macronutrient_breakdown(
                totals.protein, totals.carbs, totals.fat
            ),
            "follows_2_rules": follows_two_rules(
                totals.fructose,
                totals.omega3,
                totals.omega6,
                options.has_chronic_condition,
                options.is_full_day,
                self.policy,
            ),
        }


async def _unresolved(ingredient: Ingredient) -> Ingredient:
    return ingredient


def _violation(reason: str) -> ValidationResult:
    return ValidationResult(valid=False, reason=reason, kind=ErrorKind.RULE_VIOLATION)
