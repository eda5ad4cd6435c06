"""
RecipeShare Backend — Static Catalog
======================================

What:  The fixed recipe category groups and listing sort options shared by the
       API, validation and the dashboard's filter/sort dropdowns.
"""

from typing import Dict, List, Optional

RECIPE_CATEGORIES: Dict[str, Dict] = {
    "meals": {
        "label": "Meals",
        "options": [
            {"value": "breakfast", "label": "Breakfast"},
            {"value": "lunch", "label": "Lunch"},
            {"value": "dinner", "label": "Dinner"},
            {"value": "brunch", "label": "Brunch"},
        ],
    },
    "courses": {
        "label": "Courses",
        "options": [
            {"value": "appetizer", "label": "Appetizer"},
            {"value": "main-course", "label": "Main Course"},
            {"value": "side-dish", "label": "Side Dish"},
            {"value": "soup", "label": "Soup"},
            {"value": "salad", "label": "Salad"},
        ],
    },
    "desserts": {
        "label": "Desserts & Snacks",
        "options": [
            {"value": "dessert", "label": "Dessert"},
            {"value": "snack", "label": "Snack"},
            {"value": "baked-goods", "label": "Baked Goods"},
            {"value": "ice-cream", "label": "Ice Cream"},
        ],
    },
    "dietary": {
        "label": "Dietary",
        "options": [
            {"value": "vegetarian", "label": "Vegetarian"},
            {"value": "vegan", "label": "Vegan"},
            {"value": "gluten-free", "label": "Gluten Free"},
            {"value": "dairy-free", "label": "Dairy Free"},
        ],
    },
}

CATEGORY_VALUES = frozenset(
    option["value"]
    for group in RECIPE_CATEGORIES.values()
    for option in group["options"]
)

# Sentinel the dashboard sends for "no category filter"
ALL_CATEGORIES = "all"

SORT_OPTIONS: List[Dict[str, str]] = [
    {"value": "popular", "label": "Most Popular"},
    {"value": "recent", "label": "Recently Added"},
    {"value": "quick", "label": "Quickest to Make"},
    {"value": "alpha", "label": "Alphabetical"},
]

DEFAULT_SORT = "recent"

# The dashboard's dropdown historically sent prepTime/title while its sort
# switch expected quick/alpha; both spellings map to the same ordering.
SORT_ALIASES: Dict[str, str] = {
    "popular": "popular",
    "recent": "recent",
    "quick": "quick",
    "prepTime": "quick",
    "alpha": "alpha",
    "title": "alpha",
}


def normalize_category(value: Optional[str]) -> Optional[str]:
    """Return a stored category value, or None for blank input."""
    if value is None:
        return None
    value = value.strip().lower()
    return value or None


def is_known_category(value: str) -> bool:
    return value in CATEGORY_VALUES
