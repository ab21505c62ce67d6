"""Extracts provisional meal data from free-text model replies.

Each field has its own extractor returning ``None`` when the field is absent,
so a malformed reply degrades one field at a time. Nothing extracted here is
trusted for rule checks; nutrient values are re-derived from the database.
"""

import re

from meal_engine.domain.errors import ParseFailureError
from meal_engine.domain.meals import Ingredient, ParsedMeal, ReportedNutrients
from meal_engine.domain.nutrition import QUANTITY
from meal_engine.domain.options import GenerationOptions
from meal_engine.domain.rules import macronutrient_breakdown

DEFAULT_MEAL_NAME = "Generated Meal"
DEFAULT_INSTRUCTIONS = "No specific instructions provided."
HEAVY_METALS = ("mercury", "lead", "cadmium", "arsenic")

_NUMBER = r"(\d+(?:\.\d+)?)"
_QUANTITY = rf"({QUANTITY})"

# Numbered steps ("Step 1: ...") stay inside the section they belong to.
_HEADING = re.compile(
    r"^\s*(?:#{1,6}\s*\S|(?:\*\*|__)?(?!Step\s*\d)[A-Z][^:\n]{0,40}:)"
)
_BULLET = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")
_MEAL_LABEL = re.compile(
    r"^[\s#>*_]*meal(?:\s+name)?[*_]*\s*:[\s*_]*(.+)$", re.I | re.M
)
_INSTRUCTIONS_LABEL = (
    r"(?:meal\s+prep\s+|preparation\s+)?(?:instructions|directions|method)"
)
_CLAUSE_BREAK = re.compile(
    r"[,;(]|\s+(?:which|that|as|because|since|to)\s+", re.I
)
_SECTION_LABELS = re.compile(r"^(?:ingredients|instructions|directions)\b", re.I)

_LEADING_QUANTITY = re.compile(rf"^{_QUANTITY}\s*([a-zA-Z]+)\b\.?\s*(.*)$")
_TRAILING_QUANTITY = re.compile(
    rf"^(.+?)\s*(?::|\(|,)\s*{_QUANTITY}\s*([a-zA-Z]+)\b\.?\)?\s*$"
)

_KNOWN_UNITS = frozenset(
    {
        "g", "gram", "grams", "gr", "kg", "kgs", "mg", "oz", "ounce", "ounces",
        "lb", "lbs", "pound", "pounds", "ml", "l", "litre", "liter", "cup",
        "cups", "tbsp", "tablespoon", "tablespoons", "tsp", "teaspoon",
        "teaspoons", "slice", "slices", "clove", "cloves", "piece", "pieces",
        "fillet", "fillets", "can", "cans", "pinch", "handful", "serving",
        "servings", "large", "medium", "small", "whole", "stalk", "stalks",
        "sprig", "sprigs", "bunch", "head", "leaf", "leaves",
    }
)

_ROW_PREFIX = r"(?:^|[,;|(])[\s>*_\-•#]*(?:total\s+)?"
_ROW_SUFFIX = (
    r"(?:(?!ratio)[^:\n])*:[\s*_~≈]*(?!\d+(?:\.\d+)?\s*(?:ratio|:))" + _NUMBER
)

_NUMERIC_LABELS = {
    "fructose": r"fructose",
    "omega3": r"omega[- ]?3\b",
    "omega6": r"omega[- ]?6\b",
    "protein": r"protein\b",
    "carbs": r"carb(?:s|ohydrates?)\b",
    "fat": r"fats?\b",
    "calories": r"calories\b",
    "iron": r"iron\b",
    "fiber": r"fib(?:er|re)\b",
    "net_carbs": r"net\s+carb(?:s|ohydrates?)\b",
}

_OMEGA_RATIO = re.compile(
    r"omega(?:[- ]?3)?\s*(?:[:/]\s*(?:omega[- ]?)?6)?\s*ratio[^:\n]*:[\s*_~]*"
    r"(1\s*:\s*\d+(?:\.\d+)?)",
    re.I,
)

_SWAP_PATTERNS = (
    re.compile(r"replace .+? with (.+?)(?:\.|\n|$)", re.I),
    re.compile(r"substitute .+? with (.+?)(?:\.|\n|$)", re.I),
    re.compile(r"swap .+? for (.+?)(?:\.|\n|$)", re.I),
    re.compile(r"use (.+?) instead", re.I),
    re.compile(r"(.+?) would be a good alternative", re.I),
    re.compile(r"(.+?) is a suitable replacement", re.I),
    re.compile(r"(.+?) can be used instead", re.I),
)


def parse_meal(text: str, options: GenerationOptions) -> ParsedMeal:
    """Assemble a provisional meal from the individual extractors."""
    if not text or not text.strip():
        raise ParseFailureError("The text-generation service returned an empty reply")

    numbers = {field: extract_number(text, field) for field in _NUMERIC_LABELS}
    protein = numbers["protein"] or 0.0
    carbs = numbers["carbs"] or 0.0
    fat = numbers["fat"] or 0.0
    fiber = numbers["fiber"] or 0.0
    net = numbers["net_carbs"]
    reported = ReportedNutrients(
        fructose=numbers["fructose"] or 0.0,
        omega3=numbers["omega3"] or 0.0,
        omega6=numbers["omega6"] or 0.0,
        omega_ratio=extract_omega_ratio(text),
        protein=protein,
        carbs=carbs,
        fat=fat,
        calories=numbers["calories"] or 0.0,
        iron=numbers["iron"] or 0.0,
        fiber=fiber,
        net_carbs=net if net is not None else carbs - fiber,
    )
    heavy_metals = (
        extract_heavy_metals(text) if options.include_heavy_metals else None
    )
    return ParsedMeal(
        name=extract_name(text) or DEFAULT_MEAL_NAME,
        ingredients=tuple(extract_ingredients(text) or ()),
        instructions=extract_section(text, _INSTRUCTIONS_LABEL)
        or DEFAULT_INSTRUCTIONS,
        reported=reported,
        heavy_metal_content=heavy_metals,
        macronutrient_breakdown=macronutrient_breakdown(protein, carbs, fat),
    )


def extract_name(text: str) -> str | None:
    """Return the ``Meal:`` label value or the first meaningful line."""
    labelled = _MEAL_LABEL.search(text)
    if labelled:
        return _clean(labelled.group(1)) or None
    for line in text.splitlines():
        cleaned = _clean(line)
        if not cleaned:
            continue
        if _SECTION_LABELS.match(cleaned):
            return None
        # Intro lines such as "Here is your dinner:" are not names.
        if re.sub(r"[*_\s]+$", "", line).endswith(":"):
            continue
        return cleaned
    return None


def extract_section(text: str, label: str) -> str | None:
    """Return the body of a labelled section, up to a blank line or heading."""
    header = re.compile(
        rf"^[\s#>*_]*{label}[*_]*\s*(?::[\s*_]*(?P<rest>.*)|[*_]*\s*$)", re.I
    )
    lines = text.splitlines()
    for index, line in enumerate(lines):
        match = header.match(line)
        if not match:
            continue
        rest = (match.group("rest") or "").strip()
        collected = [rest] if rest else []
        for following in lines[index + 1 :]:
            if not following.strip():
                if collected:
                    break
                continue
            if _HEADING.match(following):
                break
            collected.append(following.rstrip())
        return "\n".join(collected).strip() or None
    return None


def extract_ingredients(text: str) -> list[Ingredient] | None:
    """Return bullet ingredients from the ``Ingredients:`` section."""
    section = extract_section(text, "ingredients")
    if section is None:
        return None
    ingredients = []
    for line in section.splitlines():
        bullet = _BULLET.match(line)
        if not bullet:
            continue
        ingredient = parse_ingredient_line(line[bullet.end() :])
        if ingredient is not None:
            ingredients.append(ingredient)
    return ingredients


def parse_ingredient_line(line: str) -> Ingredient | None:
    """Split a bullet into quantity, unit and name."""
    text = _clean(line)
    if not text:
        return None

    leading = _LEADING_QUANTITY.match(text)
    if leading:
        amount, word, rest = leading.group(1), leading.group(2), leading.group(3)
        if word.lower() in _KNOWN_UNITS:
            name = _strip_of(rest)
            if name:
                return Ingredient(name=name, amount=_compact(amount), unit=word)
            return Ingredient(name=word, amount=_compact(amount), unit="whole")
        name = _strip_of(f"{word} {rest}")
        return Ingredient(name=name, amount=_compact(amount), unit="whole")

    trailing = _TRAILING_QUANTITY.match(text)
    if trailing:
        return Ingredient(
            name=_clean(trailing.group(1)),
            amount=_compact(trailing.group(2)),
            unit=trailing.group(3),
        )

    return Ingredient(name=text, amount="1", unit="serving")


def extract_number(text: str, field: str) -> float | None:
    """Return the first number reported for a nutrient field."""
    pattern = re.compile(
        _ROW_PREFIX + rf"(?:{_NUMERIC_LABELS[field]})" + _ROW_SUFFIX, re.I | re.M
    )
    match = pattern.search(text)
    if not match:
        return None
    return float(match.group(1))


def extract_omega_ratio(text: str) -> str | None:
    """Return the reported omega ratio string, e.g. ``1:2.5``."""
    match = _OMEGA_RATIO.search(text)
    if not match:
        return None
    return re.sub(r"\s+", "", match.group(1))


def extract_heavy_metals(text: str) -> dict[str, float] | None:
    """Return heavy metals reported after the heavy-metal heading."""
    heading = re.search(r"heavy\s+metals?", text, re.I)
    if not heading:
        return None
    rest = text[heading.end() :]
    metals: dict[str, float] = {}
    for metal in HEAVY_METALS:
        match = re.search(rf"\b{metal}\b[^:\n]*:[\s*_~]*{_NUMBER}", rest, re.I)
        if match:
            metals[metal] = float(match.group(1))
    return metals or None


def extract_swap_replacement(text: str) -> str | None:
    """Return the replacement ingredient named in a swap reply."""
    for pattern in _SWAP_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1).strip():
            name = _clean(_CLAUSE_BREAK.split(match.group(1), maxsplit=1)[0])
            if name:
                return name
    for line in text.splitlines():
        lowered = line.lower()
        if line.strip() and "replace" not in lowered and "swap" not in lowered:
            name = _clean(line)
            if name:
                return name
    return None


def _clean(value: str) -> str:
    """Strip markdown emphasis, heading marks, quotes and end punctuation."""
    cleaned = re.sub(r"[*_`#]+", "", value)
    cleaned = cleaned.strip().strip("\"'“”").strip()
    return cleaned.rstrip(".:;,!").strip()


def _strip_of(name: str) -> str:
    return re.sub(r"^of\s+", "", name.strip(), flags=re.I)


def _compact(amount: str) -> str:
    return re.sub(r"\s*/\s*", "/", " ".join(amount.split()))
