"""
Generation Cache
Bounded LRU cache keyed by recipe content, injected wherever memoization is
wanted
"""

import hashlib
import json
from collections import OrderedDict
from typing import Any, Optional


class LRUCache:
    """Least-recently-used cache with a fixed capacity"""

    def __init__(self, capacity: int = 128):
        if capacity < 1:
            raise ValueError("Cache capacity must be at least 1")
        self.capacity = capacity
        self._items: OrderedDict[str, Any] = OrderedDict()

    def get(self, key: str) -> Optional[Any]:
        if key not in self._items:
            return None
        self._items.move_to_end(key)
        return self._items[key]

    def set(self, key: str, value: Any):
        self._items[key] = value
        self._items.move_to_end(key)
        while len(self._items) > self.capacity:
            self._items.popitem(last=False)

    def clear(self):
        self._items.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)


def content_key(kind: str, payload: Any) -> str:
    """Stable SHA-256 key for a JSON-serializable payload"""
    text = json.dumps(payload, sort_keys=True, default=str)
    return f"{kind}:{hashlib.sha256(text.encode('utf-8')).hexdigest()}"


def recipe_cache_key(name: str, ingredients: list, steps: list) -> str:
    """Key a recipe by name, ingredients and steps"""
    return content_key("recipe", {"name": name, "ingredients": ingredients, "steps": steps})
