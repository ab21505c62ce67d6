"""Dependency container wiring for the engine."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from meal_engine.adapters.fdc_client import FdcNutrientDatabase, HttpxFdcClient
from meal_engine.adapters.openai_text_client import OpenAITextClient
from meal_engine.adapters.supabase_cnf_database import SupabaseCnfDatabase
from meal_engine.app_logging import configure_logging
from meal_engine.config import Settings
from meal_engine.services.composer import RequestComposer
from meal_engine.services.generation import MealGenerationService
from meal_engine.services.nutrients import NutrientDatabase, NutrientGateway
from meal_engine.services.swaps import IngredientSwapService
from meal_engine.services.text_generation import TextGenerationService


@dataclass
class AppContainer:
    """Holds engine-wide dependencies."""

    settings: Settings
    text_service: TextGenerationService
    nutrient_gateway: NutrientGateway
    generation_service: MealGenerationService
    swap_service: IngredientSwapService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    configure_logging(resolved_settings.debug)
    policy = resolved_settings.rule_policy()

    openai_client = OpenAITextClient.create(resolved_settings.openai_api_key)
    text_service = TextGenerationService(
        client=openai_client,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        temperature=resolved_settings.openai_temperature,
        store=resolved_settings.openai_store,
        timeout_seconds=resolved_settings.external_call_timeout_seconds,
    )

    closers: list[Callable[[], Awaitable[None]]] = [openai_client.close]
    database: NutrientDatabase
    if resolved_settings.nutrient_database == "fdc":
        if not resolved_settings.fdc_api_key:
            raise ValueError("FDC_API_KEY is required for the fdc nutrient database")
        fdc_client = HttpxFdcClient.create(
            api_key=resolved_settings.fdc_api_key,
            base_url=resolved_settings.fdc_base_url,
        )
        closers.append(fdc_client.close)
        database = FdcNutrientDatabase(fdc_client)
    else:
        if not (
            resolved_settings.supabase_url and resolved_settings.supabase_service_key
        ):
            raise ValueError(
                "SUPABASE_URL and SUPABASE_SERVICE_KEY are required "
                "for the cnf nutrient database"
            )
        supabase_client = create_client(
            resolved_settings.supabase_url, resolved_settings.supabase_service_key
        )
        database = SupabaseCnfDatabase(supabase_client)

    gateway = NutrientGateway(
        database=database,
        timeout_seconds=resolved_settings.external_call_timeout_seconds,
        debug=resolved_settings.debug,
    )
    composer = RequestComposer(policy)
    generation_service = MealGenerationService(
        text_service=text_service,
        gateway=gateway,
        composer=composer,
        policy=policy,
    )
    swap_service = IngredientSwapService(
        text_service=text_service,
        gateway=gateway,
        composer=composer,
        policy=policy,
    )

    async def close_resources() -> None:
        for close in closers:
            await close()

    return AppContainer(
        settings=resolved_settings,
        text_service=text_service,
        nutrient_gateway=gateway,
        generation_service=generation_service,
        swap_service=swap_service,
        close_resources=close_resources,
    )
