"""
Recipe Data Model
Defines the Recipe dataclass, remix patches and the integrity checks shared by
the validator, the generation pipeline and the patch engine
"""

from dataclasses import dataclass, field
from typing import Optional

from config import DEFAULT_CATEGORY


STEP_OPS = ("add_after", "replace", "remove")


def _as_list(value, name: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{name} must be a list, got {type(value).__name__}")
    return value


def _as_dict(value, name: str) -> dict:
    if not isinstance(value, dict):
        raise ValueError(f"{name} must be an object, got {type(value).__name__}")
    return value


@dataclass
class Violation:
    """A single integrity problem, addressed by path"""
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass
class Substitute:
    """A precomputed alternative name/amount for one ingredient"""
    id: str
    name: str
    amount: str = ""

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "amount": self.amount}

    @classmethod
    def from_dict(cls, data: dict) -> "Substitute":
        data = _as_dict(data, "substitute")
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            amount=data.get("amount") or ""
        )


@dataclass
class Ingredient:
    """Represents a single identified ingredient in a recipe"""
    id: str
    name: str
    amount: Optional[str] = None  # None means "to taste"
    substitutes: list[Substitute] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "amount": self.amount,
            "substitutes": [sub.to_dict() for sub in self.substitutes]
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Ingredient":
        data = _as_dict(data, "ingredient")
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            amount=data.get("amount"),
            substitutes=[
                Substitute.from_dict(sub)
                for sub in _as_list(data.get("substitutes"), "substitutes")
            ]
        )

    def find_substitute(self, substitute_id: str) -> Optional[Substitute]:
        for sub in self.substitutes:
            if sub.id == substitute_id:
                return sub
        return None


@dataclass
class Step:
    """A cooking step referencing the ingredients it uses"""
    id: str
    text: str
    ingredient_ids: list[str] = field(default_factory=list)
    time_minutes: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "ingredient_ids": list(self.ingredient_ids),
            "time_minutes": self.time_minutes
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Step":
        data = _as_dict(data, "step")
        return cls(
            id=data.get("id", ""),
            text=data.get("text", ""),
            ingredient_ids=list(_as_list(data.get("ingredient_ids"), "ingredient_ids")),
            time_minutes=data.get("time_minutes")
        )


@dataclass
class StepOp:
    """
    One ordered step operation of a patch.

    For add_after, step_id is the step the new step goes after.
    """
    op: str
    step_id: str
    step: Optional[Step] = None

    def to_dict(self) -> dict:
        if self.op == "add_after":
            return {"op": self.op, "after_step_id": self.step_id, "step": self.step.to_dict()}
        if self.op == "replace":
            return {"op": self.op, "step_id": self.step_id, "step": self.step.to_dict()}
        return {"op": self.op, "step_id": self.step_id}

    @classmethod
    def from_dict(cls, data: dict) -> "StepOp":
        data = _as_dict(data, "step op")
        op = data.get("op")
        if op not in STEP_OPS:
            raise ValueError(f"Unknown step op: {op!r}")

        if op == "add_after":
            target = data.get("after_step_id")
        else:
            target = data.get("step_id")
        if not target:
            raise ValueError(f"Step op {op!r} is missing its target step id")

        if op == "remove":
            return cls(op=op, step_id=target)

        step_data = data.get("step")
        if not isinstance(step_data, dict):
            raise ValueError(f"Step op {op!r} requires a step object")
        step = Step.from_dict(step_data)
        if not step.id:
            if op != "replace":
                raise ValueError("New step for add_after requires an id")
            step.id = target
        return cls(op=op, step_id=target, step=step)


@dataclass
class IngredientOverride:
    ingredient_id: str
    amount: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"ingredient_id": self.ingredient_id}
        if self.amount is not None:
            data["amount"] = self.amount
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "IngredientOverride":
        data = _as_dict(data, "ingredient override")
        if not data.get("ingredient_id"):
            raise ValueError("Ingredient override requires ingredient_id")
        return cls(ingredient_id=data["ingredient_id"], amount=data.get("amount"))


@dataclass
class MetaUpdates:
    """Top-level field updates; None leaves the base value unchanged"""
    time_minutes: Optional[float] = None
    calories_per_serving: Optional[float] = None

    def to_dict(self) -> dict:
        data = {}
        if self.time_minutes is not None:
            data["time_minutes"] = self.time_minutes
        if self.calories_per_serving is not None:
            data["calories_per_serving"] = self.calories_per_serving
        return data

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "MetaUpdates":
        if data is None:
            return cls()
        data = _as_dict(data, "meta_updates")
        return cls(
            time_minutes=data.get("time_minutes"),
            calories_per_serving=data.get("calories_per_serving")
        )


@dataclass
class Patch:
    """A declarative, partial set of changes to a recipe"""
    ingredient_overrides: list[IngredientOverride] = field(default_factory=list)
    add_ingredients: list[Ingredient] = field(default_factory=list)
    step_ops: list[StepOp] = field(default_factory=list)
    meta_updates: MetaUpdates = field(default_factory=MetaUpdates)

    def to_dict(self) -> dict:
        return {
            "ingredient_overrides": [o.to_dict() for o in self.ingredient_overrides],
            "add_ingredients": [
                {"id": ing.id, "name": ing.name, "amount": ing.amount}
                for ing in self.add_ingredients
            ],
            "step_ops": [op.to_dict() for op in self.step_ops],
            "meta_updates": self.meta_updates.to_dict()
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "Patch":
        """Build a Patch from its JSON form; raises ValueError on malformed shape"""
        if data is None:
            return cls()
        data = _as_dict(data, "patch")

        add_ingredients = []
        for raw in _as_list(data.get("add_ingredients"), "add_ingredients"):
            raw = _as_dict(raw, "added ingredient")
            if not raw.get("id"):
                raise ValueError("Added ingredient requires an id")
            add_ingredients.append(
                Ingredient(id=raw["id"], name=raw.get("name", ""), amount=raw.get("amount"))
            )

        return cls(
            ingredient_overrides=[
                IngredientOverride.from_dict(o)
                for o in _as_list(data.get("ingredient_overrides"), "ingredient_overrides")
            ],
            add_ingredients=add_ingredients,
            step_ops=[StepOp.from_dict(op) for op in _as_list(data.get("step_ops"), "step_ops")],
            meta_updates=MetaUpdates.from_dict(data.get("meta_updates"))
        )


@dataclass
class Remix:
    """A named, pre-validated patch shipped alongside a recipe"""
    id: str
    title: str
    description: str = ""
    patch: Patch = field(default_factory=Patch)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "patch": self.patch.to_dict()
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Remix":
        data = _as_dict(data, "remix")
        return cls(
            id=data.get("id", ""),
            title=data.get("title", ""),
            description=data.get("description", ""),
            patch=Patch.from_dict(data.get("patch"))
        )


@dataclass
class PantryNote:
    """A pantry staple the recipe assumes, with the reason it is needed"""
    ingredient: str
    reason: str = ""

    def to_dict(self) -> dict:
        return {"ingredient": self.ingredient, "reason": self.reason}


@dataclass
class Recipe:
    """Represents a complete, identified recipe"""
    name: str
    description: str = ""
    explanation: str = ""
    servings: int = 1
    time_minutes: Optional[float] = None
    calories_per_serving: Optional[float] = None
    ingredients: list[Ingredient] = field(default_factory=list)
    steps: list[Step] = field(default_factory=list)
    image_prompt: str = ""
    remixes: list[Remix] = field(default_factory=list)
    category: str = DEFAULT_CATEGORY
    pantry_notes: list[PantryNote] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "explanation": self.explanation,
            "servings": self.servings,
            "time_minutes": self.time_minutes,
            "calories_per_serving": self.calories_per_serving,
            "ingredients": [ing.to_dict() for ing in self.ingredients],
            "steps": [step.to_dict() for step in self.steps],
            "image_prompt": self.image_prompt,
            "remixes": [remix.to_dict() for remix in self.remixes],
            "category": self.category,
            "pantry_notes": [note.to_dict() for note in self.pantry_notes]
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Recipe":
        data = _as_dict(data, "recipe")
        return cls(
            name=data.get("name", ""),
            description=data.get("description", ""),
            explanation=data.get("explanation", ""),
            servings=data.get("servings", 1),
            time_minutes=data.get("time_minutes"),
            calories_per_serving=data.get("calories_per_serving"),
            ingredients=[Ingredient.from_dict(i) for i in _as_list(data.get("ingredients"), "ingredients")],
            steps=[Step.from_dict(s) for s in _as_list(data.get("steps"), "steps")],
            image_prompt=data.get("image_prompt", ""),
            remixes=[Remix.from_dict(r) for r in _as_list(data.get("remixes"), "remixes")],
            category=data.get("category") or DEFAULT_CATEGORY,
            pantry_notes=[
                PantryNote(ingredient=n.get("ingredient", ""), reason=n.get("reason", ""))
                for n in _as_list(data.get("pantry_notes"), "pantry_notes")
                if isinstance(n, dict)
            ]
        )

    def find_ingredient(self, ingredient_id: str) -> Optional[Ingredient]:
        for ing in self.ingredients:
            if ing.id == ingredient_id:
                return ing
        return None

    def find_remix(self, remix_id: str) -> Optional[Remix]:
        for remix in self.remixes:
            if remix.id == remix_id:
                return remix
        return None

    def ingredient_ids(self) -> set[str]:
        return {ing.id for ing in self.ingredients}

    def step_ids(self) -> list[str]:
        return [step.id for step in self.steps]


@dataclass
class SourceRecipe:
    """Best-effort recipe handed over by the recipe source collaborator"""
    title: str
    ingredients: list[str] = field(default_factory=list)
    instructions: list[str] = field(default_factory=list)
    source_url: str = ""

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "ingredients": self.ingredients,
            "instructions": self.instructions,
            "source_url": self.source_url
        }


def check_integrity(recipe: Recipe) -> list[Violation]:
    """Duplicate ingredient ids, duplicate step ids and dangling step references"""
    violations = []

    seen = set()
    for i, ing in enumerate(recipe.ingredients):
        if ing.id in seen:
            violations.append(Violation(f"ingredients[{i}].id", f"duplicate ingredient id {ing.id}"))
        seen.add(ing.id)

    seen_steps = set()
    for i, step in enumerate(recipe.steps):
        if step.id in seen_steps:
            violations.append(Violation(f"steps[{i}].id", f"duplicate step id {step.id}"))
        seen_steps.add(step.id)

        for j, ref in enumerate(step.ingredient_ids):
            if ref not in seen:
                violations.append(Violation(
                    f"steps[{i}].ingredient_ids[{j}]",
                    f"references unknown ingredient id {ref}"
                ))

    return violations


def check_remix_references(recipe: Recipe) -> list[Violation]:
    """Check every remix patch against the recipe it ships with"""
    violations = []
    base_ingredients = recipe.ingredient_ids()

    for r, remix in enumerate(recipe.remixes):
        prefix = f"remixes[{r}].patch"
        patch = remix.patch

        for i, override in enumerate(patch.ingredient_overrides):
            if override.ingredient_id not in base_ingredients:
                violations.append(Violation(
                    f"{prefix}.ingredient_overrides[{i}].ingredient_id",
                    f"references unknown ingredient id {override.ingredient_id}"
                ))

        known_ingredients = set(base_ingredients)
        for i, ing in enumerate(patch.add_ingredients):
            if ing.id in known_ingredients:
                violations.append(Violation(
                    f"{prefix}.add_ingredients[{i}].id",
                    f"ingredient id {ing.id} already exists"
                ))
            known_ingredients.add(ing.id)

        # step ops resolve against the base as mutated by earlier ops
        step_ids = recipe.step_ids()
        for i, op in enumerate(patch.step_ops):
            op_path = f"{prefix}.step_ops[{i}]"
            if op.step_id not in step_ids:
                violations.append(Violation(op_path, f"references unknown step id {op.step_id}"))
                continue

            if op.op == "remove":
                step_ids.remove(op.step_id)
                continue

            for j, ref in enumerate(op.step.ingredient_ids):
                if ref not in known_ingredients:
                    violations.append(Violation(
                        f"{op_path}.step.ingredient_ids[{j}]",
                        f"references unknown ingredient id {ref}"
                    ))

            index = step_ids.index(op.step_id)
            if op.op == "add_after":
                if op.step.id in step_ids:
                    violations.append(Violation(f"{op_path}.step.id", f"step id {op.step.id} already exists"))
                    continue
                step_ids.insert(index + 1, op.step.id)
            else:
                if op.step.id != op.step_id and op.step.id in step_ids:
                    violations.append(Violation(f"{op_path}.step.id", f"step id {op.step.id} already exists"))
                    continue
                step_ids[index] = op.step.id

    return violations
