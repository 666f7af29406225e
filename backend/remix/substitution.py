"""
Substitution Engine
Swaps one ingredient's name/amount for one of its precomputed substitutes, or
back to the original. Options always come from the base recipe.
"""

import copy
import logging
from typing import Optional

from remix.models import Recipe

logger = logging.getLogger(__name__)

ORIGINAL = "original"


def apply_substitution(
    ingredient_id: str,
    substitute_id: str,
    base: Recipe,
    current: Optional[Recipe] = None
) -> Recipe:
    """
    Return a copy of the working recipe with one ingredient substituted.

    `current` is the working-ingredients projection (defaults to base). The
    original ingredient and its substitutes are looked up in base, so earlier
    substitutions never change what can be picked. Unknown ids are a no-op.
    """
    current = current if current is not None else base

    original = base.find_ingredient(ingredient_id)
    if original is None:
        logger.debug(f"Substitution ignored: unknown ingredient id {ingredient_id}")
        return current

    if substitute_id == ORIGINAL:
        name, amount = original.name, original.amount
    else:
        substitute = original.find_substitute(substitute_id)
        if substitute is None:
            logger.debug(f"Substitution ignored: unknown substitute id {substitute_id}")
            return current
        name, amount = substitute.name, substitute.amount

    working = copy.deepcopy(current)
    ingredient = working.find_ingredient(ingredient_id)
    if ingredient is None:
        return current

    ingredient.name = name
    ingredient.amount = amount
    return working


def substitution_options(ingredient_id: str, base: Recipe) -> list[dict]:
    """Picker entries: the original first, then every substitute"""
    original = base.find_ingredient(ingredient_id)
    if original is None:
        return []

    options = [{"id": ORIGINAL, "name": original.name, "amount": original.amount}]
    options.extend(sub.to_dict() for sub in original.substitutes)
    return options
