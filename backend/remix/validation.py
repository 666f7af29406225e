"""
Response Validation and Repair
Normalizes loosely-shaped model output, then validates structure, kind
distribution, uniqueness, cross-references and measurement specificity.

Every function here is a pure function of its input so it can run repeatedly
inside the generation retry loop.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from config import (
    ALTERNATIVES_LEGACY_COUNT,
    ALTERNATIVES_LEGACY_BASIC,
    ALTERNATIVES_LEGACY_DELIGHT,
    ALTERNATIVES_MIN,
    ALTERNATIVES_MAX,
    BASIC_MIN_PERCENT,
    DELIGHT_MIN_COUNT,
    DELIGHT_MAX_PERCENT,
    CHANGES_MIN,
    CHANGES_MAX,
    MAX_COMBINES_WITH,
    RECIPE_CATEGORIES,
    CATEGORY_SYNONYMS,
    DEFAULT_CATEGORY,
    KIND_SYNONYMS,
    DEFAULT_KIND,
)
from remix.models import Recipe, check_integrity

logger = logging.getLogger(__name__)


# Measurement-like tokens: a digit, a unit, a time or temperature, or a fraction glyph
SPECIFICITY_PATTERN = re.compile(
    r"(\d|½|¼|¾|⅓|⅔|⅛|tsp|tbsp|tablespoon|teaspoon|\bcups?\b|\boz\b|ounce|\bg\b|gram|\bkg\b|"
    r"\bml\b|liter|litre|pinch|minute|\bmins?\b|°F|°C|\bF\b|\bC\b)",
    re.IGNORECASE
)

PLANT_BASED_PATTERN = re.compile(r"\b(vegan|vegetarian|plant[- ]based|meatless|meat-free)\b", re.IGNORECASE)
MEAT_PATTERN = re.compile(
    r"\b(chicken|beef|pork|lamb|bacon|sausage|chorizo|turkey|ham|prosciutto|pancetta|"
    r"anchov\w*|shrimp|prawns?|fish|salmon|tuna)\b",
    re.IGNORECASE
)

NUMBER_PATTERN = re.compile(r"-?\d+(?:\.\d+)?")


@dataclass
class ValidationResult:
    """Outcome of validating one candidate document"""
    valid: bool
    data: Optional[dict] = None
    errors: list[str] = field(default_factory=list)

    @property
    def first_error(self) -> Optional[str]:
        return self.errors[0] if self.errors else None

    @classmethod
    def ok(cls, data: dict) -> "ValidationResult":
        return cls(valid=True, data=data)

    @classmethod
    def fail(cls, errors: list[str]) -> "ValidationResult":
        return cls(valid=False, errors=errors)


# =============================================================================
# COERCION HELPERS
# =============================================================================

def format_path(loc) -> str:
    """('alternatives', 3, 'changes') -> 'alternatives[3].changes'"""
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        elif path:
            path += f".{part}"
        else:
            path = str(part)
    return path or "$"


def is_specific(details: str) -> bool:
    """Lint: does the text carry a measurement, time or temperature?"""
    return bool(SPECIFICITY_PATTERN.search(details))


def split_pair(item: Any, keys: tuple[str, str]) -> Optional[dict]:
    """Accept {a, b} objects carrying a; split "a: b" strings on the first colon"""
    if isinstance(item, dict):
        head = item.get(keys[0])
        if isinstance(head, str) and head.strip():
            return dict(item)
        return None
    if isinstance(item, str) and ":" in item:
        left, right = item.split(":", 1)
        if left.strip() and right.strip():
            return {keys[0]: left.strip(), keys[1]: right.strip()}
    return None


def coerce_pairs(items: Any, keys: tuple[str, str], path: str) -> Any:
    """Repair a list of pairs, dropping entries that cannot be salvaged"""
    if items is None:
        return []
    if isinstance(items, (str, dict)):
        items = [items]
    if not isinstance(items, list):
        return items

    pairs = []
    for i, item in enumerate(items):
        pair = split_pair(item, keys)
        if pair is None:
            logger.warning(f"Dropping unparseable entry at {path}[{i}]: {item!r}")
            continue
        pairs.append(pair)
    return pairs


def map_enum(value: Any, synonyms: dict[str, list[str]], default: str) -> str:
    """Map free text onto a closed set via a synonym table, falling back to default"""
    if not isinstance(value, str):
        return default

    text = value.strip().lower()
    if text in synonyms:
        return text
    for canonical, words in synonyms.items():
        if text in words:
            return canonical
    for canonical, words in synonyms.items():
        if canonical in text or any(word in text for word in words):
            return canonical

    logger.info(f"Unmapped value {value!r}, using {default!r}")
    return default


def to_list(value: Any) -> Any:
    """A lone string or object where a list is expected becomes a one-item list"""
    if value is None:
        return []
    if isinstance(value, (str, dict)):
        return [value]
    return value


def to_number(value: Any) -> Any:
    """Parse "25", "25 minutes" or "~350 kcal"; other shapes pass through for the schema to reject"""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        match = NUMBER_PATTERN.search(value)
        if match:
            number = float(match.group())
            return int(number) if number.is_integer() else number
        if not value.strip():
            return None
    return value


def to_text(value: Any) -> Any:
    """Numbers become strings; objects are serialized to JSON text"""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return value


def pydantic_errors(error: ValidationError, prefix: tuple = ()) -> list[str]:
    messages = []
    for issue in error.errors():
        path = format_path(prefix + tuple(issue["loc"]))
        messages.append(f"{path}: {issue['msg']}")
    return messages


# =============================================================================
# ALTERNATIVES DOCUMENT
# =============================================================================

class ChangeModel(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    action: str = Field(..., min_length=1)
    details: str = Field(..., min_length=1)


class AlternativeModel(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    kind: Literal["basic", "delight"]
    title: str = Field(..., min_length=1)
    why_this_works: str = Field(..., min_length=1)
    changes: list[ChangeModel] = Field(..., min_length=CHANGES_MIN, max_length=CHANGES_MAX)
    combines_with: list[str] = Field(default_factory=list)


class AlternativesDocument(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    what_is_this: str = Field(..., min_length=1)
    why_this_works: str = Field(..., min_length=1)
    alternatives: list[AlternativeModel]


def coerce_alternatives(raw: dict) -> dict:
    """Best-effort shape repair and id defaulting; returns a new document"""
    doc = dict(raw)
    alternatives = doc.get("alternatives")
    if not isinstance(alternatives, list):
        return doc

    repaired = []
    for i, alt in enumerate(alternatives):
        if not isinstance(alt, dict):
            logger.warning(f"Dropping unparseable entry at alternatives[{i}]: {alt!r}")
            continue
        alt = dict(alt)
        position = len(repaired)

        alt["kind"] = map_enum(alt.get("kind"), KIND_SYNONYMS, DEFAULT_KIND)
        alt["changes"] = coerce_pairs(alt.get("changes"), ("action", "details"), f"alternatives[{position}].changes")
        if isinstance(alt["changes"], list):
            for change in alt["changes"]:
                if "details" in change:
                    change["details"] = to_text(change["details"])

        combines_with = to_list(alt.get("combines_with"))
        if isinstance(combines_with, list):
            combines_with = [ref for ref in combines_with if isinstance(ref, str)]
        alt["combines_with"] = combines_with

        if not alt.get("id"):
            alt["id"] = f"alt_{position + 1}"
        repaired.append(alt)

    doc["alternatives"] = repaired
    return doc


def check_distribution(alternatives: list[dict]) -> list[str]:
    """Legacy fixed count or variable range, chosen by the total alone"""
    total = len(alternatives)
    basic = sum(1 for alt in alternatives if alt["kind"] == "basic")
    delight = sum(1 for alt in alternatives if alt["kind"] == "delight")
    errors = []

    if total == ALTERNATIVES_LEGACY_COUNT:
        if basic != ALTERNATIVES_LEGACY_BASIC:
            errors.append(f"alternatives: Expected exactly {ALTERNATIVES_LEGACY_BASIC} basic cards, got {basic}")
        if delight != ALTERNATIVES_LEGACY_DELIGHT:
            errors.append(f"alternatives: Expected exactly {ALTERNATIVES_LEGACY_DELIGHT} delight cards, got {delight}")
        return errors

    if not ALTERNATIVES_MIN <= total <= ALTERNATIVES_MAX:
        return [
            f"alternatives: Expected {ALTERNATIVES_LEGACY_COUNT} or "
            f"{ALTERNATIVES_MIN}-{ALTERNATIVES_MAX} alternatives, got {total}"
        ]

    min_basic = -(-total * BASIC_MIN_PERCENT // 100)
    max_delight = total * DELIGHT_MAX_PERCENT // 100
    if basic < min_basic:
        errors.append(f"alternatives: Expected at least {min_basic} basic cards ({BASIC_MIN_PERCENT}%), got {basic}")
    if delight < DELIGHT_MIN_COUNT:
        errors.append(f"alternatives: Expected at least {DELIGHT_MIN_COUNT} delight cards, got {delight}")
    if delight > max_delight:
        errors.append(f"alternatives: Expected at most {max_delight} delight cards ({DELIGHT_MAX_PERCENT}%), got {delight}")
    return errors


def check_unique(items: list[dict], prefix: str) -> list[str]:
    """Titles (trimmed, case-insensitive) and ids must be unique"""
    errors = []
    titles = set()
    ids = set()
    for i, item in enumerate(items):
        title = item["title"].strip().lower()
        if title in titles:
            errors.append(f"{prefix}[{i}].title: All titles must be unique (duplicate {item['title']!r})")
        titles.add(title)

        if item["id"] in ids:
            errors.append(f"{prefix}[{i}].id: duplicate id {item['id']}")
        ids.add(item["id"])
    return errors


def _card_text(alt: dict) -> str:
    parts = [alt["title"]]
    for change in alt["changes"]:
        parts.append(change["action"])
        parts.append(change["details"])
    return " ".join(parts)


def check_combinations(alternatives: list[dict]) -> list[str]:
    """combines_with: bounded arity, no self reference, known ids only"""
    errors = []
    by_id = {alt["id"]: alt for alt in alternatives}

    for i, alt in enumerate(alternatives):
        refs = alt["combines_with"]
        path = f"alternatives[{i}].combines_with"
        if len(refs) > MAX_COMBINES_WITH:
            errors.append(f"{path}: combines_with must have 0-{MAX_COMBINES_WITH} entries, got {len(refs)}")

        for ref in refs:
            if ref == alt["id"]:
                errors.append(f"{path}: combines_with cannot self-reference ({ref})")
            elif ref not in by_id:
                errors.append(f"{path}: combines_with references unknown id: {ref}")
            else:
                log_contradiction(alt, by_id[ref])

    return errors


def log_contradiction(alt: dict, other: dict):
    """Soft constraint: a plant-based card paired with a meat card is logged, never rejected"""
    text, other_text = _card_text(alt), _card_text(other)
    plant_meat = PLANT_BASED_PATTERN.search(text) and MEAT_PATTERN.search(other_text)
    meat_plant = MEAT_PATTERN.search(text) and PLANT_BASED_PATTERN.search(other_text)
    if plant_meat or meat_plant:
        logger.warning(
            f"Contradictory combines_with pairing: {alt['id']} ({alt['title']!r}) "
            f"+ {other['id']} ({other['title']!r})"
        )


def check_specificity(alternatives: list[dict]) -> list[str]:
    errors = []
    for i, alt in enumerate(alternatives):
        for j, change in enumerate(alt["changes"]):
            if not is_specific(change["details"]):
                errors.append(
                    f"alternatives[{i}].changes[{j}].details: missing measurement "
                    f"(include a number, unit, or time/temp)"
                )
    return errors


def validate_alternatives(raw: Any) -> ValidationResult:
    """Validate a what_is_this / why_this_works / alternatives document"""
    if not isinstance(raw, dict):
        return ValidationResult.fail([f"$: Expected a JSON object, got {type(raw).__name__}"])

    try:
        document = AlternativesDocument.model_validate(coerce_alternatives(raw))
    except ValidationError as e:
        return ValidationResult.fail(pydantic_errors(e))

    data = document.model_dump()
    alternatives = data["alternatives"]

    errors = []
    errors.extend(check_distribution(alternatives))
    errors.extend(check_unique(alternatives, "alternatives"))
    errors.extend(check_specificity(alternatives))
    errors.extend(check_combinations(alternatives))

    if errors:
        logger.info(f"Alternatives validation failed: {errors[:5]}")
        return ValidationResult.fail(errors)
    return ValidationResult.ok(data)


# =============================================================================
# RECIPE DOCUMENT
# =============================================================================

class SubstituteModel(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    amount: str = ""


class IngredientModel(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    amount: Optional[str] = None
    substitutes: list[SubstituteModel] = Field(default_factory=list)


class StepModel(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)
    ingredient_ids: list[str] = Field(default_factory=list)
    time_minutes: Optional[float] = Field(None, ge=0)


class PatchStepModel(StepModel):
    id: str = ""  # replace may reuse the target id


class OverrideModel(BaseModel):
    ingredient_id: str = Field(..., min_length=1)
    amount: Optional[str] = None


class AddedIngredientModel(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    amount: Optional[str] = None


class StepOpModel(BaseModel):
    op: Literal["add_after", "replace", "remove"]
    step_id: Optional[str] = None
    after_step_id: Optional[str] = None
    step: Optional[PatchStepModel] = None

    @model_validator(mode="after")
    def check_targets(self):
        target_field = "after_step_id" if self.op == "add_after" else "step_id"
        if not getattr(self, target_field):
            raise ValueError(f"{self.op} requires {target_field}")
        if self.op != "remove" and self.step is None:
            raise ValueError(f"{self.op} requires a step")
        if self.op == "add_after" and not self.step.id:
            raise ValueError("add_after step requires an id")
        return self


class MetaUpdatesModel(BaseModel):
    time_minutes: Optional[float] = Field(None, ge=0)
    calories_per_serving: Optional[float] = Field(None, ge=0)


class PatchModel(BaseModel):
    ingredient_overrides: list[OverrideModel] = Field(default_factory=list)
    add_ingredients: list[AddedIngredientModel] = Field(default_factory=list)
    step_ops: list[StepOpModel] = Field(default_factory=list)
    meta_updates: MetaUpdatesModel = Field(default_factory=MetaUpdatesModel)


class RemixModel(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: str = ""
    patch: PatchModel = Field(default_factory=PatchModel)


class PantryNoteModel(BaseModel):
    ingredient: str = Field(..., min_length=1)
    reason: str = ""


class RecipeDocument(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1)
    description: str = ""
    explanation: str = ""
    servings: int = Field(1, ge=1)
    time_minutes: Optional[float] = Field(None, ge=0)
    calories_per_serving: Optional[float] = Field(None, ge=0)
    ingredients: list[IngredientModel] = Field(..., min_length=1)
    steps: list[StepModel] = Field(..., min_length=1)
    image_prompt: str = ""
    remixes: list[RemixModel] = Field(default_factory=list)
    category: str = DEFAULT_CATEGORY
    pantry_notes: list[PantryNoteModel] = Field(default_factory=list)

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: str) -> str:
        if v not in RECIPE_CATEGORIES:
            raise ValueError(f"category must be one of {', '.join(RECIPE_CATEGORIES)}")
        return v


def _coerce_step(step: Any) -> Any:
    if isinstance(step, str):
        return {"text": step}
    if not isinstance(step, dict):
        return step
    step = dict(step)
    step["ingredient_ids"] = to_list(step.get("ingredient_ids"))
    step["time_minutes"] = to_number(step.get("time_minutes"))
    return step


def _coerce_patch(patch: Any) -> Any:
    if not isinstance(patch, dict):
        return patch
    patch = dict(patch)

    for key in ("ingredient_overrides", "add_ingredients", "step_ops"):
        patch[key] = to_list(patch.get(key))

    if isinstance(patch["ingredient_overrides"], list):
        patch["ingredient_overrides"] = [
            {**o, "amount": to_text(o.get("amount"))} if isinstance(o, dict) else o
            for o in patch["ingredient_overrides"]
        ]
    if isinstance(patch["step_ops"], list):
        patch["step_ops"] = [
            {**op, "step": _coerce_step(op["step"])} if isinstance(op, dict) and "step" in op else op
            for op in patch["step_ops"]
        ]

    meta = patch.get("meta_updates")
    if isinstance(meta, dict):
        patch["meta_updates"] = {key: to_number(value) for key, value in meta.items()}
    elif meta is None:
        patch.pop("meta_updates", None)
    return patch


def coerce_recipe(raw: dict) -> dict:
    """Best-effort shape repair and id defaulting; returns a new document"""
    doc = dict(raw)

    for key in ("servings", "time_minutes", "calories_per_serving"):
        if key in doc:
            doc[key] = to_number(doc[key])
    if doc.get("servings") is None:
        doc.pop("servings", None)

    doc["category"] = map_enum(doc.get("category"), CATEGORY_SYNONYMS, DEFAULT_CATEGORY)
    doc["pantry_notes"] = coerce_pairs(doc.get("pantry_notes"), ("ingredient", "reason"), "pantry_notes")

    ingredients = doc.get("ingredients")
    if isinstance(ingredients, list):
        repaired = []
        for i, ing in enumerate(ingredients):
            if isinstance(ing, str):
                ing = {"name": ing}
            if not isinstance(ing, dict):
                logger.warning(f"Dropping unparseable entry at ingredients[{i}]: {ing!r}")
                continue
            ing = dict(ing)
            if not ing.get("id"):
                ing["id"] = f"ing_{len(repaired) + 1}"
            ing["amount"] = to_text(ing.get("amount"))

            substitutes = to_list(ing.get("substitutes"))
            if isinstance(substitutes, list):
                fixed = []
                for n, sub in enumerate(substitutes):
                    if not isinstance(sub, dict):
                        continue
                    sub = dict(sub)
                    if not sub.get("id"):
                        sub["id"] = f"sub_{ing['id']}_{n + 1}"
                    sub["amount"] = to_text(sub.get("amount")) or ""
                    fixed.append(sub)
                substitutes = fixed
            ing["substitutes"] = substitutes
            repaired.append(ing)
        doc["ingredients"] = repaired

    steps = doc.get("steps")
    if isinstance(steps, list):
        repaired = []
        for step in steps:
            step = _coerce_step(step)
            if isinstance(step, dict) and not step.get("id"):
                step["id"] = f"step_{len(repaired) + 1}"
            repaired.append(step)
        doc["steps"] = repaired

    remixes = to_list(doc.get("remixes"))
    if isinstance(remixes, list):
        repaired = []
        for i, remix in enumerate(remixes):
            if not isinstance(remix, dict):
                logger.warning(f"Dropping unparseable entry at remixes[{i}]: {remix!r}")
                continue
            remix = dict(remix)
            if not remix.get("id"):
                remix["id"] = f"remix_{len(repaired) + 1}"
            remix["patch"] = _coerce_patch(remix.get("patch"))
            if remix["patch"] is None:
                remix.pop("patch")
            repaired.append(remix)
        remixes = repaired
    doc["remixes"] = remixes

    return doc


def validate_recipe(raw: Any) -> ValidationResult:
    """Validate a full recipe document, including its embedded remixes"""
    if not isinstance(raw, dict):
        return ValidationResult.fail([f"$: Expected a JSON object, got {type(raw).__name__}"])

    try:
        document = RecipeDocument.model_validate(coerce_recipe(raw))
    except ValidationError as e:
        return ValidationResult.fail(pydantic_errors(e))

    recipe = Recipe.from_dict(document.model_dump(exclude_none=True))
    data = recipe.to_dict()

    errors = [str(v) for v in check_integrity(recipe)]
    errors.extend(check_unique(data["remixes"], "remixes"))

    if errors:
        logger.info(f"Recipe validation failed: {errors[:5]}")
        return ValidationResult.fail(errors)
    return ValidationResult.ok(data)
