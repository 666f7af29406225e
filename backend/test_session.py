"""
Tests for session state: active remix and chosen substitutes
"""

from remix.session import RecipeSession


def test_new_session_shows_the_base(base_recipe):
    session = RecipeSession(base_recipe)

    assert session.current == base_recipe
    assert session.active_remix_id is None
    assert session.selected_substitute("ing_1") == "original"


def test_apply_remix_sets_current(base_recipe):
    session = RecipeSession(base_recipe)

    derived = session.apply_remix("remix_1")

    assert session.active_remix_id == "remix_1"
    assert session.current is derived
    assert session.current.find_ingredient("ing_1").amount == "2 cups"


def test_switching_remixes_does_not_stack(base_recipe):
    session = RecipeSession(base_recipe)
    session.apply_remix("remix_1")
    session.apply_remix("remix_2")

    assert session.current.find_ingredient("ing_1").amount == "1 cup"
    assert "step_4" not in session.current.step_ids()
    assert session.current.find_ingredient("ing_4") is not None


def test_failed_remix_keeps_current(base_recipe):
    session = RecipeSession(base_recipe)
    session.apply_remix("remix_1")

    assert session.apply_remix("remix_404") is None
    assert session.active_remix_id == "remix_1"
    assert session.current.find_ingredient("ing_1").amount == "2 cups"


def test_substitute_records_choice(base_recipe):
    session = RecipeSession(base_recipe)

    current = session.substitute("ing_1", "sub_ing_1_2")

    assert current.find_ingredient("ing_1").name == "leek"
    assert session.selected_substitute("ing_1") == "sub_ing_1_2"
    assert base_recipe.find_ingredient("ing_1").name == "onion"


def test_unknown_substitute_is_not_recorded(base_recipe):
    session = RecipeSession(base_recipe)
    session.substitute("ing_1", "sub_nope")

    assert session.selected_substitute("ing_1") == "original"
    assert session.current.find_ingredient("ing_1").name == "onion"


def test_substitute_clears_active_remix(base_recipe):
    session = RecipeSession(base_recipe)
    session.apply_remix("remix_2")

    current = session.substitute("ing_2", "sub_ing_2_1")

    assert session.active_remix_id is None
    assert current.find_ingredient("ing_4") is None
    assert current.find_ingredient("ing_2").name == "garlic powder"


def test_remix_resets_substitutions(base_recipe):
    session = RecipeSession(base_recipe)
    session.substitute("ing_1", "sub_ing_1_1")

    session.apply_remix("remix_1")
    session.clear_remix()

    assert session.selected_substitute("ing_1") == "original"
    assert session.current.find_ingredient("ing_1").name == "onion"


def test_reset_returns_to_base(base_recipe):
    session = RecipeSession(base_recipe)
    session.substitute("ing_1", "sub_ing_1_1")
    session.apply_remix("remix_1")

    assert session.reset() == base_recipe
    assert session.active_remix_id is None


def test_options_come_from_the_base(base_recipe):
    session = RecipeSession(base_recipe)
    session.substitute("ing_1", "sub_ing_1_1")

    options = session.options("ing_1")
    assert options[0]["name"] == "onion"
    assert len(options) == 3
