"""Tests for meal generation and the meal builder."""

import asyncio

import pytest

from meal_engine.domain.errors import ErrorKind
from meal_engine.domain.options import GenerationOptions, GenerationType, MealType
from meal_engine.services.composer import NO_COMPLIANT_MEAL_MESSAGE
from meal_engine.services.generation import MealGenerationService
from meal_engine.services.text_generation import TextGenerationService

COMPLIANT_REPLY = """Seared Salmon with Spinach

Ingredients:
- 150 g salmon
- 100 g spinach
- 10 g olive oil

Instructions:
Sear the salmon and wilt the spinach in the olive oil.

Fructose: 0.5g
Omega-3: 9g
Omega-6: 1g
Omega Ratio: 1:0.11
Protein: 33g
"""

HIGH_OMEGA6_REPLY = """Salmon with Sunflower Dressing

Ingredients:
- 100 g salmon
- 12 g sunflower oil

Instructions:
Dress the salmon.

Omega Ratio: 1:2.5
"""

TWO_INGREDIENT_DINNER_REPLY = """Sardines with Blueberries

Ingredients:
- 100 g sardines
- 100 g blueberries
"""

UNKNOWN_INGREDIENT_REPLY = """Mystery Stew

Ingredients:
- 100 g salmon
- 50 g unicorn meat
- 10 g olive oil
"""


def test_generate_returns_validated_meal(generation_service, text_client) -> None:
    text_client.replies = [COMPLIANT_REPLY]

    result = asyncio.run(
        generation_service.generate(GenerationOptions(meal_type=MealType.DINNER))
    )

    assert result.ok is True
    assert result.error is None
    assert result.attempts == 1
    assert result.meal is not None
    assert result.meal.name == "Seared Salmon with Spinach"
    assert result.meal.omega_ratio == "1:2.00"
    assert result.meal.reported.omega_ratio == "1:0.11"
    assert result.meal.follows_2_rules is True
    assert len(text_client.calls) == 1
    assert "Create a dinner with: " in text_client.prompts[0]



def test_generate_two_ingredient_dinner_in_one_call(
    generation_service, text_client, pantry
) -> None:
    pantry.add_food(
        70, "Sardines, canned in water", protein=25.0, omega3=1.5, omega6=1.0
    )
    pantry.add_food(71, "Blueberries, raw", fructose=3.0, omega3=0.5, omega6=3.0)
    text_client.replies = [TWO_INGREDIENT_DINNER_REPLY]

    result = asyncio.run(
        generation_service.generate(GenerationOptions(meal_type=MealType.DINNER))
    )

    assert result.ok is True
    assert result.attempts == 1
    assert result.meal is not None
    assert result.meal.total_fructose == pytest.approx(3.0)
    assert result.meal.omega3 == pytest.approx(2.0)
    assert result.meal.omega6 == pytest.approx(4.0)
    assert result.meal.omega_ratio == "1:2.00"
    assert result.meal.follows_2_rules is True
    assert len(text_client.calls) == 1

def test_generate_retries_once_with_reason(generation_service, text_client) -> None:
    text_client.replies = [HIGH_OMEGA6_REPLY]

    result = asyncio.run(generation_service.generate(GenerationOptions()))

    reason = "Omega ratio (1:3.50) outside acceptable range of 1:1.5-1:2.9"
    assert result.meal is None
    assert result.error_kind is ErrorKind.EXHAUSTED_RETRY
    assert result.error == f"Failed to generate a compliant meal after retry. {reason}"
    assert result.attempts == 2
    assert len(text_client.calls) == 2
    assert text_client.prompts[1].startswith(
        f"The previous meal generation attempt failed because: {reason}"
    )


def test_generate_recovers_on_retry(generation_service, text_client) -> None:
    text_client.replies = [HIGH_OMEGA6_REPLY, COMPLIANT_REPLY]

    result = asyncio.run(generation_service.generate(GenerationOptions()))

    assert result.ok is True
    assert result.attempts == 2
    assert result.meal is not None
    assert result.meal.omega_ratio == "1:2.00"


def test_unknown_ingredient_short_circuits(
    generation_service, text_client, pantry
) -> None:
    text_client.replies = [UNKNOWN_INGREDIENT_REPLY]

    result = asyncio.run(generation_service.generate(GenerationOptions()))

    assert result.error_kind is ErrorKind.EXHAUSTED_RETRY
    assert result.error is not None
    assert result.error.endswith('Ingredient "unicorn meat" not found in database')
    assert pantry.nutrient_lookups == []
    assert pantry.searches.count("salmon") == 1


def test_empty_reply_takes_part_in_retry(generation_service, text_client) -> None:
    text_client.replies = ["", COMPLIANT_REPLY]

    result = asyncio.run(generation_service.generate(GenerationOptions()))

    assert result.ok is True
    assert result.attempts == 2
    assert "returned an empty reply" in text_client.prompts[1]


def test_service_failure_is_not_retried(generation_service, text_client) -> None:
    text_client.error = RuntimeError("upstream 503")

    result = asyncio.run(generation_service.generate(GenerationOptions()))

    assert result.error_kind is ErrorKind.SERVICE_UNAVAILABLE
    assert result.error == "Text generation failed: upstream 503"
    assert result.attempts == 1
    assert len(text_client.calls) == 1


def test_service_timeout_has_its_own_kind(text_client, gateway) -> None:
    text_client.replies = [COMPLIANT_REPLY]
    text_client.delay = 1.0
    service = MealGenerationService(
        text_service=TextGenerationService(
            client=text_client, model="test-model", timeout_seconds=0.01
        ),
        gateway=gateway,
    )

    result = asyncio.run(service.generate(GenerationOptions()))

    assert result.error_kind is ErrorKind.SERVICE_TIMEOUT
    assert result.attempts == 1


def test_database_failure_is_not_retried(
    generation_service, text_client, pantry
) -> None:
    text_client.replies = [COMPLIANT_REPLY]
    pantry.error = RuntimeError("database offline")

    result = asyncio.run(generation_service.generate(GenerationOptions()))

    assert result.error_kind is ErrorKind.SERVICE_UNAVAILABLE
    assert len(text_client.calls) == 1


def test_full_day_and_week_are_not_implemented(generation_service, text_client) -> None:
    for generation_type in (GenerationType.FULL_DAY, GenerationType.FULL_WEEK):
        result = asyncio.run(
            generation_service.generate(
                GenerationOptions(generation_type=generation_type)
            )
        )
        assert result.error_kind is ErrorKind.NOT_IMPLEMENTED

    assert text_client.calls == []


def test_each_call_gets_a_fresh_cache(generation_service, text_client, pantry) -> None:
    text_client.replies = [COMPLIANT_REPLY]
    options = GenerationOptions()

    asyncio.run(generation_service.generate(options))
    asyncio.run(generation_service.generate(options))

    assert pantry.searches.count("salmon") == 2


def test_build_requires_ingredients(generation_service, text_client) -> None:
    result = asyncio.run(
        generation_service.build_from_ingredients(["", "  "], GenerationOptions())
    )

    assert result.error_kind is ErrorKind.INVALID_REQUEST
    assert result.error == "No ingredients provided"
    assert text_client.calls == []


def test_build_with_rules_validates(generation_service, text_client) -> None:
    text_client.replies = [COMPLIANT_REPLY]

    result = asyncio.run(
        generation_service.build_from_ingredients(
            ["salmon", "spinach"], GenerationOptions(meal_type=MealType.DINNER)
        )
    )

    assert result.ok is True
    assert "Using salmon, spinach" in text_client.prompts[0]


def test_build_with_rules_retries_with_feedback(
    generation_service, text_client
) -> None:
    text_client.replies = [HIGH_OMEGA6_REPLY]

    result = asyncio.run(
        generation_service.build_from_ingredients(["salmon"], GenerationOptions())
    )

    assert result.error_kind is ErrorKind.EXHAUSTED_RETRY
    assert len(text_client.calls) == 2
    assert text_client.prompts[1].endswith(text_client.prompts[0])


def test_build_without_rules_is_advisory(generation_service, text_client) -> None:
    text_client.replies = [UNKNOWN_INGREDIENT_REPLY]

    result = asyncio.run(
        generation_service.build_from_ingredients(
            ["salmon"], GenerationOptions(), follow_two_rules=False
        )
    )

    assert result.ok is True
    assert result.meal is not None
    assert result.meal.omega_ratio == "1:2.50"
    assert result.meal.follows_2_rules is True
    assert [ingredient.resolved for ingredient in result.meal.ingredients] == [
        True,
        False,
        True,
    ]
    assert len(text_client.calls) == 1


def test_build_reports_no_compliant_meal(generation_service, text_client) -> None:
    text_client.replies = [NO_COMPLIANT_MEAL_MESSAGE]

    result = asyncio.run(
        generation_service.build_from_ingredients(
            ["chocolate", "honey"], GenerationOptions(), follow_two_rules=False
        )
    )

    assert result.error_kind is ErrorKind.NO_COMPLIANT_MEAL
    assert result.error == NO_COMPLIANT_MEAL_MESSAGE
    assert result.meal is None
