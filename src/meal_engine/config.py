"""Application configuration."""

import os
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from meal_engine.domain.rules import RulePolicy

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    openai_api_key: str
    openai_model: str = "gpt-4o"
    openai_reasoning_effort: str | None = None
    openai_temperature: float | None = 0.7
    openai_store: bool = False
    nutrient_database: Literal["cnf", "fdc"] = "cnf"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    fdc_api_key: str | None = None
    fdc_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    external_call_timeout_seconds: float = 30.0
    debug: bool = False
    environment: str = _ENVIRONMENT

    fructose_daily_limit_chronic_g: float = 15.0
    fructose_daily_limit_g: float = 25.0
    omega_ratio_min: float = 1.5
    omega_ratio_max: float = 2.9
    net_carbs_limit_meal_g: float = 15.0
    net_carbs_limit_day_g: float = 45.0
    meals_per_day: int = 3

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    def rule_policy(self) -> RulePolicy:
        """Build the rule thresholds from settings."""
        return RulePolicy(
            fructose_daily_limit_chronic_g=self.fructose_daily_limit_chronic_g,
            fructose_daily_limit_g=self.fructose_daily_limit_g,
            omega_ratio_min=self.omega_ratio_min,
            omega_ratio_max=self.omega_ratio_max,
            net_carbs_limit_meal_g=self.net_carbs_limit_meal_g,
            net_carbs_limit_day_g=self.net_carbs_limit_day_g,
            meals_per_day=self.meals_per_day,
        )
