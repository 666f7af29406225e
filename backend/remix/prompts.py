"""
Prompt Construction
Builds the messages for each generation attempt from the request and the
history of failed attempts
"""

from typing import Optional

from config import (
    ALTERNATIVES_MIN,
    ALTERNATIVES_MAX,
    BASIC_MIN_PERCENT,
    DELIGHT_MIN_COUNT,
    DELIGHT_MAX_PERCENT,
    MAX_COMBINES_WITH,
    RECIPE_CATEGORIES,
)
from remix.generation import Attempt
from remix.models import SourceRecipe


ALTERNATIVES_SYSTEM_PROMPT = f"""You are a chef assistant. Your job is to explain a recipe and propose swipe-card modifications that elevate it.

Return a JSON object with this EXACT structure:

{{
  "what_is_this": "1-2 plain sentences: what kind of dish, what it's made from, why it's easy to make your own",
  "why_this_works": "1-2 plain sentences: why the flavors and textures satisfy and why people keep making it",
  "alternatives": [
    {{
      "id": "alt_1",
      "kind": "basic" or "delight",
      "title": "4-7 word title",
      "why_this_works": "EXACTLY 1 sentence naming the mechanism (richness, contrast, smoke, freshness, crunch...)",
      "changes": [
        {{ "action": "2-5 word action", "details": "specific instruction with measurement" }},
        {{ "action": "2-5 word action", "details": "specific instruction with measurement" }}
      ],
      "combines_with": ["alt_3"]
    }}
  ]
}}

ALTERNATIVES COUNT & DISTRIBUTION:
- Return BETWEEN {ALTERNATIVES_MIN} AND {ALTERNATIVES_MAX} alternatives. Simple dishes get fewer, complex dishes more.
- At least {BASIC_MIN_PERCENT}% must be kind="basic" (broadly appealing improvements).
- At least {DELIGHT_MIN_COUNT} and at most {DELIGHT_MAX_PERCENT}% must be kind="delight" (surprising but plausible twists).

RULES:
1. ids are "alt_1", "alt_2", ..., "alt_N" in order with no gaps.
2. Every alternative has 2 or 3 changes.
3. Every "details" field includes a measurement, time or temperature (e.g. "1 tsp", "2 tbsp", "1/2 cup", "5 minutes", "350°F").
4. Titles are unique; do not repeat the same core idea.
5. "combines_with" lists 0-{MAX_COMBINES_WITH} OTHER alternative ids that genuinely pair well. Never list the card's own id. Avoid conflicts such as "make vegan" + "add sausage".
6. For savory dishes include at least 3 protein or diet changes; for desserts focus on texture and richness instead.
7. Keep the dish recognizable. Use ONLY the provided ingredients and steps as ground truth.

Return only valid JSON."""


CATEGORY_CHOICES = ", ".join(f'"{c}"' for c in RECIPE_CATEGORIES)

RECIPE_SYSTEM_PROMPT = f"""You are a chef assistant. Create one recipe from the ingredients the user has, then propose remixes of it.

Return a JSON object with this EXACT structure:

{{
  "name": "Recipe name",
  "description": "1-2 sentence description",
  "explanation": "Why these ingredients work together",
  "category": one of {CATEGORY_CHOICES},
  "servings": 2,
  "time_minutes": 30,
  "calories_per_serving": 450,
  "ingredients": [
    {{
      "id": "ing_1",
      "name": "onion",
      "amount": "1 cup, diced",
      "substitutes": [{{ "id": "sub_ing_1_1", "name": "shallots", "amount": "3/4 cup, diced" }}]
    }}
  ],
  "steps": [
    {{ "id": "step_1", "text": "Chop the onion.", "ingredient_ids": ["ing_1"], "time_minutes": 2 }}
  ],
  "pantry_notes": [{{ "ingredient": "olive oil", "reason": "for sauteing" }}],
  "image_prompt": "A short visual description of the finished dish",
  "remixes": [
    {{
      "id": "remix_1",
      "title": "Short remix title",
      "description": "What changes and why",
      "patch": {{
        "ingredient_overrides": [{{ "ingredient_id": "ing_1", "amount": "2 cups" }}],
        "add_ingredients": [{{ "id": "ing_10", "name": "smoked paprika", "amount": "1 tsp" }}],
        "step_ops": [
          {{ "op": "add_after", "after_step_id": "step_1", "step": {{ "id": "step_10", "text": "...", "ingredient_ids": ["ing_10"], "time_minutes": 1 }} }},
          {{ "op": "replace", "step_id": "step_2", "step": {{ "id": "step_2", "text": "...", "ingredient_ids": [], "time_minutes": 5 }} }},
          {{ "op": "remove", "step_id": "step_3" }}
        ],
        "meta_updates": {{ "time_minutes": 35, "calories_per_serving": 480 }}
      }}
    }}
  ]
}}

RULES:
1. Ingredient ids and step ids are unique. Every step's ingredient_ids must reference ingredient ids in this recipe.
2. Use "amount": null for "to taste" ingredients.
3. Give each ingredient 0-3 substitutes with ids "sub_<ingredient id>_<n>".
4. Remix patches may only reference ingredient and step ids that exist in this recipe, except ids they add themselves. New ingredient and step ids must not reuse existing ids.
5. Return 3-5 remixes with unique titles.

Return only valid JSON."""


CORRECTION_TEMPLATE = (
    "Your previous response failed validation: {error}\n"
    "Correct the JSON so it matches the required schema exactly. "
    "Return only the corrected JSON object."
)


def build_alternatives_prompt(source: SourceRecipe) -> str:
    ingredients_list = "\n".join(f"- {ing}" for ing in source.ingredients)
    instructions_list = "\n".join(f"{i}. {step}" for i, step in enumerate(source.instructions, 1))

    return f"""Analyze the recipe below and return what_is_this, why_this_works and {ALTERNATIVES_MIN}-{ALTERNATIVES_MAX} alternatives.

Recipe title: {source.title}

Ingredients:
{ingredients_list}

Instructions:
{instructions_list}

Return only valid JSON."""


def build_recipe_prompt(ingredients: list[str], servings: Optional[int] = None, notes: str = "") -> str:
    lines = ["Ingredients I have:"]
    lines.extend(f"- {ing}" for ing in ingredients)
    if servings:
        lines.append(f"\nServings: {servings}")
    if notes:
        lines.append(f"\nNotes: {notes}")
    lines.append("\nReturn only valid JSON.")
    return "\n".join(lines)


def with_corrections(messages: list[dict], history: list[Attempt]) -> list[dict]:
    """Carry the most recent failed output and its first error into the conversation"""
    if not history:
        return messages

    last = history[-1]
    if last.output is None:
        return messages

    return messages + [
        {"role": "assistant", "content": last.output},
        {"role": "user", "content": CORRECTION_TEMPLATE.format(error=last.error)},
    ]


def alternatives_messages(source: SourceRecipe, history: list[Attempt]) -> list[dict]:
    messages = [
        {"role": "system", "content": ALTERNATIVES_SYSTEM_PROMPT},
        {"role": "user", "content": build_alternatives_prompt(source)},
    ]
    return with_corrections(messages, history)


def recipe_messages(
    ingredients: list[str],
    history: list[Attempt],
    servings: Optional[int] = None,
    notes: str = ""
) -> list[dict]:
    messages = [
        {"role": "system", "content": RECIPE_SYSTEM_PROMPT},
        {"role": "user", "content": build_recipe_prompt(ingredients, servings, notes)},
    ]
    return with_corrections(messages, history)
