"""
Recipe Remix Backend Configuration
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# OpenRouter Configuration
OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY", "")
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1/chat/completions"
LLM_MODEL = os.getenv("LLM_MODEL", "openai/gpt-4o-mini")

# LLM Settings
LLM_TEMPERATURE = 0.7
LLM_MAX_TOKENS = 4000
LLM_TIMEOUT = 60
LLM_MAX_RETRIES = 3  # transport-level retries (429 / timeouts) per generation attempt

# Generation Settings
GENERATION_MAX_ATTEMPTS = int(os.getenv("GENERATION_MAX_ATTEMPTS", "2"))
GENERATION_CACHE_SIZE = int(os.getenv("GENERATION_CACHE_SIZE", "128"))

# Alternatives distribution
ALTERNATIVES_LEGACY_COUNT = 9
ALTERNATIVES_LEGACY_BASIC = 5
ALTERNATIVES_LEGACY_DELIGHT = 4
ALTERNATIVES_MIN = 10
ALTERNATIVES_MAX = 15
BASIC_MIN_PERCENT = 60
DELIGHT_MIN_COUNT = 3
DELIGHT_MAX_PERCENT = 40
CHANGES_MIN = 2
CHANGES_MAX = 3
MAX_COMBINES_WITH = 2

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# CORS - Frontend URLs
CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    os.getenv("FRONTEND_URL", ""),  # Production frontend URL
]
# Filter empty strings
CORS_ORIGINS = [origin for origin in CORS_ORIGINS if origin]

# Recipe categories (closed set)
RECIPE_CATEGORIES = ["breakfast", "main", "side", "dessert", "snack", "drink"]
DEFAULT_CATEGORY = "main"

# Category synonyms, mapped onto RECIPE_CATEGORIES
CATEGORY_SYNONYMS = {
    "breakfast": ["brunch", "morning", "breakfast food"],
    "main": ["entree", "entrée", "dinner", "lunch", "main course", "main dish",
             "comfort food", "supper", "one pot", "one-pot"],
    "side": ["side dish", "sides", "salad", "accompaniment", "starter", "appetizer"],
    "dessert": ["sweet", "sweets", "baking", "baked goods", "pastry", "cake", "treat"],
    "snack": ["snacks", "finger food", "bite", "bites", "party food"],
    "drink": ["beverage", "cocktail", "smoothie", "drinks", "mocktail"],
}

# Alternative kind synonyms
KIND_SYNONYMS = {
    "basic": ["base", "classic", "standard", "core", "essential", "simple", "upgrade"],
    "delight": ["twist", "surprise", "bold", "creative", "fun", "wildcard", "adventurous"],
}
DEFAULT_KIND = "basic"
