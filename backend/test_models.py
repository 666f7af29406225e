"""
Tests for the recipe model and its integrity checks
"""

import json

import pytest

from remix.models import Recipe, StepOp, Patch, check_integrity, check_remix_references


def test_recipe_survives_plain_json(recipe_data):
    recipe = Recipe.from_dict(recipe_data)
    restored = Recipe.from_dict(json.loads(json.dumps(recipe.to_dict())))

    assert restored == recipe
    assert restored.find_ingredient("ing_3").amount is None
    assert restored.remixes[0].patch.step_ops[0].to_dict()["after_step_id"] == "step_2"


def test_clean_recipe_has_no_violations(base_recipe):
    assert check_integrity(base_recipe) == []
    assert check_remix_references(base_recipe) == []


def test_duplicate_ids_and_dangling_references(recipe_data):
    recipe_data["ingredients"][1]["id"] = "ing_1"
    recipe_data["steps"][2]["id"] = "step_1"
    recipe_data["steps"][0]["ingredient_ids"] = ["ing_1", "ing_99"]

    messages = [str(v) for v in check_integrity(Recipe.from_dict(recipe_data))]

    assert "ingredients[1].id: duplicate ingredient id ing_1" in messages
    assert "steps[2].id: duplicate step id step_1" in messages
    assert "steps[0].ingredient_ids[1]: references unknown ingredient id ing_99" in messages
    assert any("ing_2" in m for m in messages)  # step_2 still points at the renamed garlic


def test_remix_references_must_resolve_against_base(recipe_data):
    recipe_data["remixes"][0]["patch"]["ingredient_overrides"].append({"ingredient_id": "ing_42", "amount": "1"})
    recipe_data["remixes"][1]["patch"]["step_ops"].append({"op": "remove", "step_id": "step_9"})
    recipe_data["remixes"][1]["patch"]["add_ingredients"].append({"id": "ing_2", "name": "dup", "amount": "1"})

    messages = [str(v) for v in check_remix_references(Recipe.from_dict(recipe_data))]

    assert "remixes[0].patch.ingredient_overrides[1].ingredient_id: references unknown ingredient id ing_42" in messages
    assert "remixes[1].patch.step_ops[1]: references unknown step id step_9" in messages
    assert "remixes[1].patch.add_ingredients[1].id: ingredient id ing_2 already exists" in messages


def test_step_ops_can_target_steps_added_earlier_in_the_same_patch(recipe_data):
    recipe_data["remixes"][0]["patch"]["step_ops"].append({
        "op": "add_after",
        "after_step_id": "step_4",
        "step": {"id": "step_5", "text": "Serve.", "ingredient_ids": []}
    })
    assert check_remix_references(Recipe.from_dict(recipe_data)) == []


def test_removed_step_cannot_be_targeted_again(recipe_data):
    recipe_data["remixes"][0]["patch"]["step_ops"] = [
        {"op": "remove", "step_id": "step_3"},
        {"op": "remove", "step_id": "step_3"}
    ]
    messages = [str(v) for v in check_remix_references(Recipe.from_dict(recipe_data))]
    assert messages == ["remixes[0].patch.step_ops[1]: references unknown step id step_3"]


def test_new_step_ingredients_must_exist(recipe_data):
    recipe_data["remixes"][0]["patch"]["step_ops"][0]["step"]["ingredient_ids"] = ["ing_77"]
    messages = [str(v) for v in check_remix_references(Recipe.from_dict(recipe_data))]
    assert messages == ["remixes[0].patch.step_ops[0].step.ingredient_ids[0]: references unknown ingredient id ing_77"]


def test_step_op_shapes():
    with pytest.raises(ValueError):
        StepOp.from_dict({"op": "explode", "step_id": "step_1"})
    with pytest.raises(ValueError):
        StepOp.from_dict({"op": "add_after", "after_step_id": "step_1", "step": {"text": "no id"}})
    with pytest.raises(ValueError):
        StepOp.from_dict({"op": "remove"})

    replace = StepOp.from_dict({"op": "replace", "step_id": "step_2", "step": {"text": "New text"}})
    assert replace.step.id == "step_2"
    assert replace.step.ingredient_ids == []
    assert replace.step.time_minutes is None


def test_empty_patch_changes_nothing():
    patch = Patch.from_dict({})
    assert patch.ingredient_overrides == []
    assert patch.step_ops == []
    assert patch.meta_updates.to_dict() == {}
