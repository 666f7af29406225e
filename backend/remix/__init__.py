"""
Recipe Remix Core Module
Recipe model, response validation, generation retry, patch and substitution engines
"""

from remix.models import Recipe, Patch, Remix, SourceRecipe, check_integrity, check_remix_references
from remix.validation import validate_alternatives, validate_recipe, ValidationResult
from remix.generation import generate_with_retry, generate_with_retry_async, GenerationResult
from remix.patch import apply_patch, apply_remix
from remix.substitution import apply_substitution, substitution_options
from remix.session import RecipeSession
from remix.cache import LRUCache
from remix.llm import call_llm, call_llm_async, LLMError, RateLimitError, APIError

__all__ = [
    "Recipe",
    "Patch",
    "Remix",
    "SourceRecipe",
    "check_integrity",
    "check_remix_references",
    "validate_alternatives",
    "validate_recipe",
    "ValidationResult",
    "generate_with_retry",
    "generate_with_retry_async",
    "GenerationResult",
    "apply_patch",
    "apply_remix",
    "apply_substitution",
    "substitution_options",
    "RecipeSession",
    "LRUCache",
    "call_llm",
    "call_llm_async",
    "LLMError",
    "RateLimitError",
    "APIError",
]
