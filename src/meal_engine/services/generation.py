"""Meal generation with a single feedback retry."""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from meal_engine.domain.errors import ErrorKind, MealEngineError, ParseFailureError
from meal_engine.domain.meals import GenerationResult, ValidationResult
from meal_engine.domain.options import GenerationOptions, GenerationType
from meal_engine.domain.rules import DEFAULT_POLICY, RulePolicy
from meal_engine.services.composer import (
    NO_COMPLIANT_MEAL_MESSAGE,
    RequestComposer,
    with_feedback,
)
from meal_engine.services.nutrients import NutrientGateway
from meal_engine.services.parser import parse_meal
from meal_engine.services.text_generation import TextGenerationService
from meal_engine.services.validation import MealValidator

if TYPE_CHECKING:
    from collections.abc import Callable

MAX_ATTEMPTS = 2
RETRY_EXHAUSTED_MESSAGE = "Failed to generate a compliant meal after retry."

_logger = logging.getLogger(__name__)


@dataclass
class MealGenerationService:
    """Generates meals and rejects those breaking the rules.

    Each call gets its own validator with a fresh lookup cache, so
    concurrent calls share only the injected clients.
    """

    text_service: TextGenerationService
    gateway: NutrientGateway
    composer: RequestComposer = field(default_factory=RequestComposer)
    policy: RulePolicy = DEFAULT_POLICY

    async def generate(self, options: GenerationOptions) -> GenerationResult:
        """Generate one validated meal, retrying once with the failure reason."""
        if options.generation_type is not GenerationType.SINGLE:
            return GenerationResult.failure(
                f"Generation type '{options.generation_type.value}' is not implemented",
                ErrorKind.NOT_IMPLEMENTED,
            )
        return await self._generate_with_retry(
            options,
            self.composer.meal_request(options),
            lambda reason: self.composer.retry_request(options, reason),
        )

    async def build_from_ingredients(
        self,
        ingredients: list[str],
        options: GenerationOptions,
        follow_two_rules: bool = True,
    ) -> GenerationResult:
        """Build a meal around caller-supplied ingredients.

        With ``follow_two_rules`` the meal is validated like a generated one;
        without it a single attempt is aggregated and never rejected.
        """
        names = [name.strip() for name in ingredients if name and name.strip()]
        if not names:
            return GenerationResult.failure(
                "No ingredients provided", ErrorKind.INVALID_REQUEST
            )

        request = self.composer.builder_request(options, names, follow_two_rules)
        if follow_two_rules:
            return await self._generate_with_retry(
                options, request, lambda reason: with_feedback(request, reason)
            )
        return await self._build_advisory(options, request)

    async def _generate_with_retry(
        self,
        options: GenerationOptions,
        request: str,
        retry_request: "Callable[[str], str]",
    ) -> GenerationResult:
        validator = MealValidator(self.gateway.scoped(), self.policy)
        prompt = request
        reason = ""
        for attempt in range(1, MAX_ATTEMPTS + 1):
            if attempt > 1:
                prompt = retry_request(reason)
            try:
                reply = await self.text_service.complete(prompt)
                if NO_COMPLIANT_MEAL_MESSAGE in reply:
                    return GenerationResult.failure(
                        reply.strip(), ErrorKind.NO_COMPLIANT_MEAL, attempt
                    )
                parsed = parse_meal(reply, options)
                meal, result = await validator.validate(parsed, options)
            except ParseFailureError as exc:
                meal, result = None, ValidationResult(
                    valid=False, reason=str(exc), kind=ErrorKind.PARSE_FAILURE
                )
            except MealEngineError as exc:
                _logger.warning("Meal generation aborted: %s", exc)
                return GenerationResult.failure(str(exc), exc.kind, attempt)

            if result.valid and meal is not None:
                _logger.info("Meal accepted: name=%s attempt=%s", meal.name, attempt)
                return GenerationResult(meal=meal, attempts=attempt)

            reason = result.reason or "unknown validation failure"
            _logger.info(
                "Meal rejected: attempt=%s kind=%s reason=%s",
                attempt,
                result.kind.value if result.kind else "n/a",
                reason,
            )

        return GenerationResult.failure(
            f"{RETRY_EXHAUSTED_MESSAGE} {reason}",
            ErrorKind.EXHAUSTED_RETRY,
            MAX_ATTEMPTS,
        )

    async def _build_advisory(
        self, options: GenerationOptions, request: str
    ) -> GenerationResult:
        validator = MealValidator(self.gateway.scoped(), self.policy)
        try:
            reply = await self.text_service.complete(request)
            if NO_COMPLIANT_MEAL_MESSAGE in reply:
                return GenerationResult.failure(
                    reply.strip(), ErrorKind.NO_COMPLIANT_MEAL, 1
                )
            parsed = parse_meal(reply, options)
            meal = await validator.resolve_advisory(parsed, options)
        except MealEngineError as exc:
            _logger.warning("Meal build failed: %s", exc)
            return GenerationResult.failure(str(exc), exc.kind, 1)

        _logger.info(
            "Meal built without rule enforcement: name=%s follows_2_rules=%s",
            meal.name,
            meal.follows_2_rules,
        )
        return GenerationResult(meal=meal, attempts=1)
