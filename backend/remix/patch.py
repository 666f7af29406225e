"""
Remix Patch Engine
Derives a new recipe from a base recipe and a declarative patch.

The base is never mutated. Unresolved references are soft failures: the
offending override or op is logged and skipped, and the rest of the patch
still applies. Only a malformed patch shape yields None.
"""

import copy
import logging
from typing import Optional, Union

from remix.models import Ingredient, Patch, Recipe, Step, check_integrity

logger = logging.getLogger(__name__)


def _index_of(steps: list[Step], step_id: str) -> Optional[int]:
    for i, step in enumerate(steps):
        if step.id == step_id:
            return i
    return None


def _prepare_step(step: Step, ingredient_ids: set[str]) -> Step:
    """Copy a patch step, dropping ingredient references that do not resolve"""
    new_step = copy.deepcopy(step)
    dangling = [ref for ref in new_step.ingredient_ids if ref not in ingredient_ids]
    if dangling:
        logger.warning(f"Step {new_step.id} references unknown ingredients {dangling}, dropping them")
        new_step.ingredient_ids = [ref for ref in new_step.ingredient_ids if ref in ingredient_ids]
    return new_step


def _apply_overrides(patch: Patch, ingredients: list[Ingredient]):
    by_id = {ing.id: ing for ing in ingredients}
    for override in patch.ingredient_overrides:
        ingredient = by_id.get(override.ingredient_id)
        if ingredient is None:
            logger.warning(f"Override skipped: unknown ingredient id {override.ingredient_id}")
            continue
        if override.amount is not None:
            ingredient.amount = override.amount


def _add_ingredients(patch: Patch, ingredients: list[Ingredient]):
    existing = {ing.id for ing in ingredients}
    for added in patch.add_ingredients:
        if added.id in existing:
            logger.warning(f"Add skipped: ingredient id {added.id} already exists")
            continue
        ingredients.append(Ingredient(id=added.id, name=added.name, amount=added.amount, substitutes=[]))
        existing.add(added.id)


def _apply_step_ops(patch: Patch, steps: list[Step], ingredient_ids: set[str]):
    for op in patch.step_ops:
        index = _index_of(steps, op.step_id)
        if index is None:
            logger.warning(f"Step op {op.op} skipped: unknown step id {op.step_id}")
            continue

        if op.op == "remove":
            del steps[index]
            continue

        new_step = _prepare_step(op.step, ingredient_ids)
        clash = _index_of(steps, new_step.id)

        if op.op == "add_after":
            if clash is not None:
                logger.warning(f"Step op add_after skipped: step id {new_step.id} already exists")
                continue
            steps.insert(index + 1, new_step)
        else:
            if clash is not None and clash != index:
                logger.warning(f"Step op replace skipped: step id {new_step.id} already exists")
                continue
            steps[index] = new_step


def apply_patch(patch: Union[Patch, dict], base: Recipe) -> Optional[Recipe]:
    """
    Apply a patch to a base recipe and return the derived recipe.

    Order: ingredient overrides, added ingredients, step ops (in patch order),
    meta updates. Returns None if the patch cannot be read at all.
    """
    if isinstance(patch, dict):
        try:
            patch = Patch.from_dict(patch)
        except ValueError as e:
            logger.error(f"Malformed patch, cannot apply: {e}")
            return None

    derived = copy.deepcopy(base)

    _apply_overrides(patch, derived.ingredients)
    _add_ingredients(patch, derived.ingredients)
    _apply_step_ops(patch, derived.steps, derived.ingredient_ids())

    meta = patch.meta_updates
    if meta.time_minutes is not None:
        derived.time_minutes = meta.time_minutes
    if meta.calories_per_serving is not None:
        derived.calories_per_serving = meta.calories_per_serving

    violations = check_integrity(derived)
    if violations:
        logger.error(f"Derived recipe failed integrity check: {[str(v) for v in violations]}")
        return None

    return derived


def apply_remix(remix_id: str, base: Recipe) -> Optional[Recipe]:
    """Apply one of the base recipe's own remixes, always against the base"""
    remix = base.find_remix(remix_id)
    if remix is None:
        logger.warning(f"Unknown remix id {remix_id}")
        return None
    return apply_patch(remix.patch, base)
