"""
Recipe Session
Tracks the base recipe, the one active derived recipe and the chosen
substitutes for a single user session
"""

import copy
import logging
from typing import Optional

from remix.models import Recipe
from remix.patch import apply_remix
from remix.substitution import ORIGINAL, apply_substitution, substitution_options

logger = logging.getLogger(__name__)


class RecipeSession:
    """
    Session state over an immutable base recipe.

    A remix and substitutions are never composed: applying a remix resets the
    chosen substitutes, and substituting while a remix is active drops the
    remix and returns to the base ingredients.
    """

    def __init__(self, base: Recipe):
        self.base = base
        self.active_remix_id: Optional[str] = None
        self._remixed: Optional[Recipe] = None
        self._working = copy.deepcopy(base)
        self._choices: dict[str, str] = {}

    @property
    def current(self) -> Recipe:
        if self._remixed is not None:
            return self._remixed
        return self._working

    def apply_remix(self, remix_id: str) -> Optional[Recipe]:
        """Derive from the base; on failure the current recipe is kept"""
        derived = apply_remix(remix_id, self.base)
        if derived is None:
            return None

        self._reset_substitutions()
        self.active_remix_id = remix_id
        self._remixed = derived
        return derived

    def clear_remix(self) -> Recipe:
        self.active_remix_id = None
        self._remixed = None
        return self.current

    def substitute(self, ingredient_id: str, substitute_id: str) -> Recipe:
        if self.active_remix_id is not None:
            logger.info(f"Substitution requested while remix {self.active_remix_id} is active, clearing remix")
            self.clear_remix()

        self._working = apply_substitution(ingredient_id, substitute_id, self.base, self._working)
        if self._working.find_ingredient(ingredient_id) is not None and self._is_known(ingredient_id, substitute_id):
            self._choices[ingredient_id] = substitute_id
        return self._working

    def selected_substitute(self, ingredient_id: str) -> str:
        return self._choices.get(ingredient_id, ORIGINAL)

    def options(self, ingredient_id: str) -> list[dict]:
        return substitution_options(ingredient_id, self.base)

    def reset(self) -> Recipe:
        self.clear_remix()
        self._reset_substitutions()
        return self.current

    def _reset_substitutions(self):
        self._working = copy.deepcopy(self.base)
        self._choices = {}

    def _is_known(self, ingredient_id: str, substitute_id: str) -> bool:
        return any(option["id"] == substitute_id for option in self.options(ingredient_id))
