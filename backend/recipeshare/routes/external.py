"""
RecipeShare Backend — External Recipe Proxy Routes
====================================================

What:  Read-only proxy over TheMealDB, served through the response cache.
How:   Each route names its TTL and hands a loader to `cached_json()`; the
       loader only runs on a cache miss.

    Route                                   Upstream            TTL
    /api/external-recipes/search?query=     search.php?s=       CACHE_TTL_SEARCH (300s)
    /api/external-recipes/categories        categories.php      CACHE_TTL_CATEGORIES (3600s)
    /api/external-recipes/category/{c}      filter.php?c=       CACHE_TTL_CATEGORY (600s)
    /api/external-recipes/ingredient/{i}    filter.php?i=       CACHE_TTL_INGREDIENT (600s)
    /api/external-recipes/{id}              lookup.php?i=       CACHE_TTL_LOOKUP (3600s)

Upstream failures become 502 (or 503 while the circuit breaker is open) and
are never cached.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from recipeshare.cache import cached_json
from recipeshare.config import settings
from recipeshare.schemas.common import ErrorResponse
from recipeshare.services.mealdb_service import MealDBClient, get_mealdb_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/external-recipes", tags=["External Recipes"])

UPSTREAM_RESPONSES = {
    502: {"description": "TheMealDB request failed", "model": ErrorResponse},
    503: {"description": "TheMealDB circuit breaker open", "model": ErrorResponse},
}


@router.get(
    "/search",
    responses=UPSTREAM_RESPONSES,
    summary="Search TheMealDB by meal name",
)
async def search_external(
    request: Request,
    response: Response,
    query: str = Query(default="", description="Meal name fragment; empty lists everything"),
    client: MealDBClient = Depends(get_mealdb_client),
) -> List[Dict[str, Any]]:
    return await cached_json(
        request, response, settings.cache_ttl_search, lambda: client.search_meals(query)
    )


@router.get(
    "/categories",
    responses=UPSTREAM_RESPONSES,
    summary="TheMealDB meal categories",
)
async def external_categories(
    request: Request,
    response: Response,
    client: MealDBClient = Depends(get_mealdb_client),
) -> List[Dict[str, Any]]:
    return await cached_json(
        request, response, settings.cache_ttl_categories, client.list_categories
    )


@router.get(
    "/category/{category}",
    responses=UPSTREAM_RESPONSES,
    summary="TheMealDB meals in a category",
)
async def external_by_category(
    category: str,
    request: Request,
    response: Response,
    client: MealDBClient = Depends(get_mealdb_client),
) -> List[Dict[str, Any]]:
    return await cached_json(
        request,
        response,
        settings.cache_ttl_category,
        lambda: client.filter_by_category(category),
    )


@router.get(
    "/ingredient/{ingredient}",
    responses=UPSTREAM_RESPONSES,
    summary="TheMealDB meals using an ingredient",
)
async def external_by_ingredient(
    ingredient: str,
    request: Request,
    response: Response,
    client: MealDBClient = Depends(get_mealdb_client),
) -> List[Dict[str, Any]]:
    return await cached_json(
        request,
        response,
        settings.cache_ttl_ingredient,
        lambda: client.filter_by_ingredient(ingredient),
    )


@router.get(
    "/{meal_id}",
    responses=UPSTREAM_RESPONSES,
    summary="Full TheMealDB meal by ID",
    description="Returns null when TheMealDB has no meal with that ID.",
)
async def external_meal(
    meal_id: str,
    request: Request,
    response: Response,
    client: MealDBClient = Depends(get_mealdb_client),
) -> Optional[Dict[str, Any]]:
    return await cached_json(
        request, response, settings.cache_ttl_lookup, lambda: client.lookup_meal(meal_id)
    )
