"""
RecipeShare Backend — Recipe Request/Response Schemas
=======================================================

What:  Pydantic models defining the recipe API contract.
How:   FastAPI uses these to serialize responses and generate OpenAPI docs.
       Create/update requests arrive as multipart forms (an image may be
       attached), so they are read field by field in the route instead of
       through a body model.
"""

import uuid
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from recipeshare.schemas.common import CamelModel


# ══════════════════════════════════════════════════════════════════════════
# Recipe Representations
# ══════════════════════════════════════════════════════════════════════════


class RecipeResponse(CamelModel):
    """
    What:  Full representation of a stored recipe.
    Who:   Returned by every recipe endpoint, alone or inside a wrapper.

    `image` is a URL path under /api/files, or null when no image was uploaded.
    """
    id: uuid.UUID
    title: str
    description: str = ""
    ingredients: str = Field(description="Newline-separated ingredient list")
    instructions: str
    prep_time: Optional[int] = Field(default=None, description="Preparation time in minutes")
    category: Optional[str] = None
    image: Optional[str] = Field(default=None, description="URL path of the recipe image")
    popularity: float = Field(description="Average star rating (0.0 when unrated)")
    rating_count: int = 0
    user_id: uuid.UUID
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, recipe) -> "RecipeResponse":
        return cls(
            id=recipe.id,
            title=recipe.title,
            description=recipe.description or "",
            ingredients=recipe.ingredients,
            instructions=recipe.instructions,
            prep_time=recipe.prep_time,
            category=recipe.category,
            image=f"/api/files/{recipe.image_path}" if recipe.image_path else None,
            popularity=recipe.popularity,
            rating_count=recipe.rating_count,
            user_id=recipe.user_id,
            created_at=recipe.created_at,
            updated_at=recipe.updated_at,
        )


class RecipeMutationResponse(CamelModel):
    """Returned by create, update and rating endpoints."""
    message: str
    recipe: RecipeResponse


class RecipeListResponse(CamelModel):
    """
    What:  One page of the filtered, sorted recipe listing.

    Example:
        {"recipes": [...], "currentPage": 2, "totalPages": 5, "totalRecipes": 47}
    """
    recipes: List[RecipeResponse]
    current_page: int
    total_pages: int
    total_recipes: int = Field(description="Recipes matching the filters, across all pages")


# ══════════════════════════════════════════════════════════════════════════
# Ratings
# ══════════════════════════════════════════════════════════════════════════


class RatingRequest(CamelModel):
    rating: float = Field(description="1 to 5 stars in steps of 0.5")


class StarBreakdown(CamelModel):
    """How a rating renders as five stars: full, half and empty counts."""
    full: int
    half: int
    empty: int


class RatingSummary(CamelModel):
    recipe_id: uuid.UUID
    average: float
    count: int
    distribution: Dict[str, int] = Field(
        description="Ratings per whole star, keys '5' to '1'; half stars count toward the lower star"
    )
    stars: StarBreakdown


# ══════════════════════════════════════════════════════════════════════════
# Sharing
# ══════════════════════════════════════════════════════════════════════════


class ShareLink(CamelModel):
    name: str
    url: str


class ShareResponse(CamelModel):
    url: str = Field(description="Public page of the recipe on the frontend")
    title: str
    text: str
    links: List[ShareLink]


# ══════════════════════════════════════════════════════════════════════════
# Catalog
# ══════════════════════════════════════════════════════════════════════════


class CatalogOption(CamelModel):
    value: str
    label: str


class CategoryGroup(CamelModel):
    label: str
    options: List[CatalogOption]


class CatalogResponse(CamelModel):
    categories: Dict[str, CategoryGroup]
    sort_options: List[CatalogOption]
