"""Ingredient swap service."""

import dataclasses
import logging
from dataclasses import dataclass, field

from meal_engine.domain.errors import ErrorKind, MealEngineError
from meal_engine.domain.meals import GeneratedMeal, GenerationResult, Ingredient
from meal_engine.domain.options import GenerationOptions
from meal_engine.domain.rules import DEFAULT_POLICY, RulePolicy
from meal_engine.services.composer import RequestComposer
from meal_engine.services.nutrients import NutrientGateway
from meal_engine.services.parser import extract_swap_replacement
from meal_engine.services.text_generation import TextGenerationService
from meal_engine.services.validation import MealValidator

SWAP_MAX_OUTPUT_TOKENS = 200

_logger = logging.getLogger(__name__)


@dataclass
class IngredientSwapService:
    """Replaces one ingredient of a meal and re-aggregates its totals."""

    text_service: TextGenerationService
    gateway: NutrientGateway
    composer: RequestComposer = field(default_factory=RequestComposer)
    policy: RulePolicy = DEFAULT_POLICY

    async def swap_ingredient(
        self, meal: GeneratedMeal, index: int, options: GenerationOptions
    ) -> GenerationResult:
        """Swap ``meal.ingredients[index]`` for a model-suggested alternative.

        The replacement keeps the original amount and unit. Rules are not
        enforced; ``follows_2_rules`` is recomputed on the new meal.
        """
        if not 0 <= index < len(meal.ingredients):
            return GenerationResult.failure(
                "Invalid ingredient index", ErrorKind.INVALID_REQUEST
            )

        original = meal.ingredients[index]
        validator = MealValidator(self.gateway.scoped(), self.policy)
        try:
            reply = await self.text_service.complete(
                self.composer.swap_request(meal, index),
                max_output_tokens=SWAP_MAX_OUTPUT_TOKENS,
            )
            replacement_name = extract_swap_replacement(reply)
            if not replacement_name:
                return GenerationResult.failure(
                    "Failed to extract new ingredient from response",
                    ErrorKind.PARSE_FAILURE,
                    1,
                )
            matches = await validator.gateway.search_food(replacement_name, 1)
            if not matches:
                return GenerationResult.failure(
                    f'Ingredient "{replacement_name}" not found in database',
                    ErrorKind.INGREDIENT_NOT_FOUND,
                    1,
                )
            replacement = await validator.resolve_ingredient(
                Ingredient(
                    name=replacement_name, amount=original.amount, unit=original.unit
                ),
                matches[0],
            )
        except MealEngineError as exc:
            _logger.warning("Ingredient swap failed: %s", exc)
            return GenerationResult.failure(str(exc), exc.kind, 1)

        ingredients = list(meal.ingredients)
        ingredients[index] = replacement
        swapped = validator.aggregate(
            dataclasses.replace(meal, ingredients=tuple(ingredients)), options
        )
        _logger.info(
            "Swapped %s for %s in %s", original.name, replacement.name, meal.name
        )
        return GenerationResult(meal=swapped, attempts=1)
