"""
Shared fixtures for the recipe remix tests
"""

import copy

import pytest

from remix.models import Recipe


RECIPE_DATA = {
    "name": "Garlic Onion Saute",
    "description": "A quick savory base.",
    "explanation": "Onion and garlic build a sweet, savory foundation.",
    "servings": 2,
    "time_minutes": 15,
    "calories_per_serving": 120,
    "category": "side",
    "ingredients": [
        {
            "id": "ing_1",
            "name": "onion",
            "amount": "1 cup",
            "substitutes": [
                {"id": "sub_ing_1_1", "name": "shallots", "amount": "3/4 cup"},
                {"id": "sub_ing_1_2", "name": "leek", "amount": "1 large"}
            ]
        },
        {
            "id": "ing_2",
            "name": "garlic",
            "amount": "2 cloves",
            "substitutes": [{"id": "sub_ing_2_1", "name": "garlic powder", "amount": "1/2 tsp"}]
        },
        {"id": "ing_3", "name": "salt", "amount": None, "substitutes": []}
    ],
    "steps": [
        {"id": "step_1", "text": "Chop the onion.", "ingredient_ids": ["ing_1"], "time_minutes": 2},
        {"id": "step_2", "text": "Saute onion and garlic.", "ingredient_ids": ["ing_1", "ing_2"], "time_minutes": 5},
        {"id": "step_3", "text": "Season to taste.", "ingredient_ids": ["ing_3"], "time_minutes": None}
    ],
    "image_prompt": "Golden sauteed onions in a cast iron pan",
    "pantry_notes": [{"ingredient": "olive oil", "reason": "for sauteing"}],
    "remixes": [
        {
            "id": "remix_1",
            "title": "Double Onion",
            "description": "More onion, slower cook.",
            "patch": {
                "ingredient_overrides": [{"ingredient_id": "ing_1", "amount": "2 cups"}],
                "step_ops": [
                    {
                        "op": "add_after",
                        "after_step_id": "step_2",
                        "step": {"id": "step_4", "text": "Caramelize 10 more minutes.", "ingredient_ids": ["ing_1"], "time_minutes": 10}
                    }
                ],
                "meta_updates": {"time_minutes": 25}
            }
        },
        {
            "id": "remix_2",
            "title": "Smoky",
            "description": "Smoked paprika finish.",
            "patch": {
                "add_ingredients": [{"id": "ing_4", "name": "smoked paprika", "amount": "1 tsp"}],
                "step_ops": [
                    {
                        "op": "replace",
                        "step_id": "step_3",
                        "step": {"id": "step_3", "text": "Season with salt and paprika.", "ingredient_ids": ["ing_3", "ing_4"]}
                    }
                ],
                "meta_updates": {"calories_per_serving": 125}
            }
        }
    ]
}


def make_alternative(n: int, kind: str = "basic") -> dict:
    return {
        "id": f"alt_{n}",
        "kind": kind,
        "title": f"Variation number {n}",
        "why_this_works": "Extra butter adds richness.",
        "changes": [
            {"action": "Add butter", "details": "Stir in 2 tbsp butter"},
            {"action": "Bake longer", "details": "Bake 5 minutes more at 375°F"}
        ],
        "combines_with": []
    }


def make_alternatives_doc(basic: int, delight: int) -> dict:
    kinds = ["basic"] * basic + ["delight"] * delight
    return {
        "what_is_this": "A creamy baked pasta made from noodles, cheese and sauce.",
        "why_this_works": "Crispy edges against a soft middle keep every bite interesting.",
        "alternatives": [make_alternative(i + 1, kind) for i, kind in enumerate(kinds)]
    }


@pytest.fixture
def recipe_data():
    return copy.deepcopy(RECIPE_DATA)


@pytest.fixture
def base_recipe(recipe_data):
    return Recipe.from_dict(recipe_data)


@pytest.fixture
def alternatives_doc():
    """Factory: alternatives_doc(basic, delight) -> valid alternatives document"""
    return make_alternatives_doc


@pytest.fixture
def alternative():
    """Factory: alternative(n, kind) -> one valid alternative card"""
    return make_alternative
