"""Composes constraint prompts for the text-generation service."""

from dataclasses import dataclass

from meal_engine.domain.meals import GeneratedMeal
from meal_engine.domain.options import GenerationOptions, IronLevel
from meal_engine.domain.rules import (
    DEFAULT_POLICY,
    RulePolicy,
    fructose_limit,
    net_carbs_limit,
)

NO_COMPLIANT_MEAL_MESSAGE = (
    "No compliant meal is possible with these constraints. "
    "Please adjust your preferences and try again."
)

ALWAYS_EXCLUDED = ("soy",)

_HEADER = (
    "You are an expert in nutrition, medicine, and anti-inflammatory meal "
    "planning. Only respond with what is asked of you.\n"
    "Do not create a meal unless it fully satisfies all user constraints. "
    "Avoid repeating meals you've previously generated. Vary ingredients and "
    "meal types as much as possible within the user's constraints."
)

_NO_COMPLIANT_INSTRUCTION = (
    "If any requirement cannot be met exactly, respond only with: "
    f"'{NO_COMPLIANT_MEAL_MESSAGE}'"
)

_RESPONSE_FORMAT = (
    "Format the answer as plain text:\n"
    "- the meal name on the first line;\n"
    "- 'Ingredients:' followed by one '- <amount> <unit> <ingredient>' line "
    "per ingredient, amounts in grams where possible;\n"
    "- 'Instructions:' followed by the preparation steps;\n"
    "- one 'Label: value' line each for Fructose, Omega-3, Omega-6, "
    "Omega Ratio, Protein, Carbs, Fat, Calories, Iron, Fiber and Net Carbs."
)


@dataclass(frozen=True)
class RequestComposer:
    """Builds deterministic prompts from generation options."""

    policy: RulePolicy = DEFAULT_POLICY

    def meal_request(self, options: GenerationOptions) -> str:
        """Prompt for a freely generated meal following the 2 Rules."""
        return self._assemble(
            options,
            f"Create a {_meal_label(options)} with: "
            + self._constraints(options, follow_two_rules=True)
            + ".",
        )

    def retry_request(self, options: GenerationOptions, reason: str) -> str:
        """Prompt for a new attempt, led by the previous failure reason."""
        return with_feedback(self.meal_request(options), reason)

    def builder_request(
        self,
        options: GenerationOptions,
        ingredients: list[str],
        follow_two_rules: bool = True,
    ) -> str:
        """Prompt for a meal built around the supplied ingredients."""
        body = (
            f"Using {', '.join(ingredients)} and only adding ingredients if "
            f"required, create a {_meal_label(options)} with: "
            + self._constraints(options, follow_two_rules=follow_two_rules)
            + "."
        )
        if not follow_two_rules:
            body = f"{_NO_COMPLIANT_INSTRUCTION}\n\n{body}"
        return self._assemble(options, body)

    def swap_request(self, meal: GeneratedMeal, index: int) -> str:
        """Prompt asking for a replacement of one ingredient."""
        names = ", ".join(ingredient.name for ingredient in meal.ingredients)
        target = meal.ingredients[index].name
        return (
            f"Here are ingredients for a meal: {names}.\n"
            f"I would like to exchange {target} for something else with a very "
            "similar or lower omega 6 and fructose content. "
            f"Answer with one sentence: 'Replace {target} with <ingredient>.'"
        )

    def _assemble(self, options: GenerationOptions, body: str) -> str:
        parts = [_HEADER, body]
        if options.previous_meals:
            parts.append(
                "Avoid repeating these meals or similar ingredients: "
                + ", ".join(options.previous_meals)
            )
        parts.append(_RESPONSE_FORMAT)
        return "\n\n".join(parts)

    def _constraints(
        self, options: GenerationOptions, *, follow_two_rules: bool
    ) -> str:
        clauses: list[str] = []
        if follow_two_rules:
            clauses.extend(self._two_rule_clauses(options))
        if options.protein_goal:
            period = "day" if options.protein_goal_per_day else "meal"
            clauses.append(
                f"at least {_number(options.protein_goal)}g of protein per {period}"
            )
        clauses.append(
            f"{'with' if options.use_grass_fed else 'without'} grass fed "
            "meat/pastured pork"
        )
        exclusions = [*options.allergies, *ALWAYS_EXCLUDED]
        clauses.append(f"no ingredients matching {', '.join(exclusions)}")
        diets = list(options.dietary_preferences)
        if options.dietary_preset.base_diet:
            diets.append(options.dietary_preset.base_diet)
        if diets:
            clauses.append(f"adhering to a {', '.join(diets)} diet")
        iron = "low" if options.iron_level is IronLevel.HIGH else "high"
        clauses.append(f"{iron} in iron")
        if options.medications:
            names = ", ".join(medication.name for medication in options.medications)
            clauses.append(f"no ingredients that interact negatively with {names}")
        period = "1 day" if options.is_full_day else "1 meal"
        clauses.append(
            f"enough calories for {period} for a {_number(options.weight)} "
            f"{options.weight_unit.value}, {options.age} year old, "
            f"{options.sex.value}"
        )
        if follow_two_rules:
            limit = net_carbs_limit(options.is_full_day, self.policy)
            clauses.append(f"limit net carbs to {_number(limit)}g")
        clauses.append(_report_sections(options))
        return "; ".join(clauses)

    def _two_rule_clauses(self, options: GenerationOptions) -> list[str]:
        ratio = f"a {self.policy.omega_band_label} omega 3:6 ratio range"
        supplement = options.omega3_supplement
        if supplement is not None and supplement.takes_supplement:
            share = "" if options.is_full_day else "⅓ of "
            ratio += f" including {share}{supplement.describe()} already"
        limit = fructose_limit(
            options.has_chronic_condition, options.is_full_day, self.policy
        )
        return [ratio, f"total fructose below {_number(limit)}g"]


def with_feedback(request: str, reason: str) -> str:
    """Prepend a previous failure reason to a request."""
    return (
        f"The previous meal generation attempt failed because: {reason}\n\n{request}"
    )


def _report_sections(options: GenerationOptions) -> str:
    sections = ["ingredients listed"]
    if options.include_instructions:
        sections.append("meal prep instructions")
    if options.include_macros:
        sections.append("a macronutrient profile")
    sections.append("total fructose and omega ratio")
    sections.append("a report of calories, iron, fiber")
    if options.include_heavy_metals:
        sections.append("heavy metal content (mercury, lead, cadmium, arsenic)")
    sections.append("net carbs")
    return ", ".join(sections)


def _meal_label(options: GenerationOptions) -> str:
    return options.meal_type.value if options.meal_type else "meal"


def _number(value: float) -> str:
    """Format a number with at most two decimals and no trailing zeros."""
    return f"{value:.2f}".rstrip("0").rstrip(".")
