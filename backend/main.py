"""
Recipe Remix Backend - FastAPI Application
Main entry point for the recipe remix API
"""

import logging
from functools import partial
from typing import Awaitable, Callable, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from config import CORS_ORIGINS, GENERATION_CACHE_SIZE, LLM_MODEL
from remix.cache import LRUCache, content_key, recipe_cache_key
from remix.generation import check_generated_recipe, generate_with_retry_async
from remix.llm import call_llm_async
from remix.models import Recipe, SourceRecipe
from remix.patch import apply_remix
from remix.prompts import alternatives_messages, recipe_messages
from remix.substitution import apply_substitution, substitution_options
from remix.utils import setup_logging
from remix.validation import validate_alternatives, validate_recipe

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


# Request/Response Models
class AlternativesRequest(BaseModel):
    title: str = Field(..., min_length=1)
    ingredients: list[str] = Field(..., min_length=1)
    instructions: list[str] = Field(..., min_length=1)
    source_url: str = ""


class GenerateRecipeRequest(BaseModel):
    ingredients: list[str] = Field(..., min_length=1)
    servings: Optional[int] = Field(None, ge=1)
    notes: str = ""


class GenerationResponse(BaseModel):
    success: bool
    data: Optional[dict] = None
    error: Optional[str] = None
    retry_count: int = 0
    cached: bool = False


class ApplyRemixRequest(BaseModel):
    recipe: dict
    remix_id: str


class SubstituteRequest(BaseModel):
    recipe: dict  # the base recipe
    current: Optional[dict] = None  # working recipe with earlier substitutions
    ingredient_id: str
    substitute_id: str


class RecipeResponse(BaseModel):
    recipe: dict
    options: list[dict] = []


def _load_recipe(data: dict, field_name: str = "recipe") -> Recipe:
    """Route client-supplied recipes through the validator before use"""
    validation = validate_recipe(data)
    if not validation.valid:
        raise HTTPException(
            status_code=422,
            detail={"message": f"Invalid {field_name}", "errors": validation.errors[:10]}
        )
    return Recipe.from_dict(validation.data)


def create_app(
    generate: Optional[Callable[[list[dict]], Awaitable[str]]] = None,
    cache: Optional[LRUCache] = None
) -> FastAPI:
    """Build the API with an injected generation collaborator and cache"""
    cache = cache if cache is not None else LRUCache(GENERATION_CACHE_SIZE)

    async def run_generate(messages: list[dict]) -> str:
        if generate is not None:
            return await generate(messages)
        return await call_llm_async(messages)

    app = FastAPI(
        title="Recipe Remix API",
        description="Recipe remix backend - validated AI remixes, patches and substitutions",
        version=VERSION
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.cache = cache

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {"message": "Recipe Remix API is running", "version": VERSION, "model": LLM_MODEL}

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "cache_entries": len(cache)}

    @app.post("/remix/alternatives", response_model=GenerationResponse)
    async def remix_alternatives(request: AlternativesRequest):
        """Generate validated remix alternatives for an extracted recipe"""
        source = SourceRecipe(**request.model_dump())
        key = recipe_cache_key(source.title, source.ingredients, source.instructions)

        cached = cache.get(key)
        if cached is not None:
            return GenerationResponse(success=True, data=cached, cached=True)

        logger.info(
            f"Generating alternatives for {source.title!r} "
            f"ingredient_count={len(source.ingredients)} instruction_count={len(source.instructions)}"
        )
        result = await generate_with_retry_async(
            partial(alternatives_messages, source),
            run_generate,
            validate_alternatives
        )
        if result.success:
            cache.set(key, result.result)
        return GenerationResponse(**result.to_dict())

    @app.post("/recipes/generate", response_model=GenerationResponse)
    async def generate_recipe(request: GenerateRecipeRequest):
        """Generate a base recipe with remixes from an ingredient list"""
        key = content_key("generate", request.model_dump())

        cached = cache.get(key)
        if cached is not None:
            return GenerationResponse(success=True, data=cached, cached=True)

        def build_messages(history):
            return recipe_messages(request.ingredients, history, servings=request.servings, notes=request.notes)

        logger.info(f"Generating recipe from {len(request.ingredients)} ingredients")
        result = await generate_with_retry_async(
            build_messages,
            run_generate,
            validate_recipe,
            post_check=check_generated_recipe
        )
        if result.success:
            cache.set(key, result.result)
        return GenerationResponse(**result.to_dict())

    @app.post("/recipes/apply-remix", response_model=RecipeResponse)
    async def apply_remix_endpoint(request: ApplyRemixRequest):
        """Derive a remixed recipe; always computed against the supplied base"""
        base = _load_recipe(request.recipe)
        if base.find_remix(request.remix_id) is None:
            raise HTTPException(status_code=404, detail="Remix not found")

        derived = apply_remix(request.remix_id, base)
        if derived is None:
            raise HTTPException(status_code=422, detail="Remix could not be applied")
        return RecipeResponse(recipe=derived.to_dict())

    @app.post("/recipes/substitute", response_model=RecipeResponse)
    async def substitute_endpoint(request: SubstituteRequest):
        """Swap one ingredient for a substitute (or back to the original)"""
        base = _load_recipe(request.recipe)
        current = _load_recipe(request.current, "current recipe") if request.current else None

        working = apply_substitution(request.ingredient_id, request.substitute_id, base, current)
        return RecipeResponse(
            recipe=working.to_dict(),
            options=substitution_options(request.ingredient_id, base)
        )

    @app.on_event("startup")
    async def startup_event():
        """Initialize on startup"""
        setup_logging()
        logger.info(f"Recipe Remix Backend v{VERSION} started")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
