"""
RecipeShare Backend — Recipe Route Handlers
=============================================

What:  User recipe endpoints: listing, CRUD, ratings, share links and the
       static category/sort catalog.
How:   Create and update take multipart/form-data so an image can ride along
       with the text fields; everything else is JSON.
Who:   Called by the dashboard (listing, detail, editor, rating widget,
       share menu).

Route order matters: /recipes/categories is declared before
/recipes/{recipe_id} so it is not captured by the ID pattern.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from recipeshare.catalog import RECIPE_CATEGORIES, SORT_OPTIONS
from recipeshare.database import get_db_session
from recipeshare.schemas.common import ErrorResponse, MessageResponse
from recipeshare.schemas.recipe import (
    CatalogResponse,
    RatingRequest,
    RatingSummary,
    RecipeListResponse,
    RecipeMutationResponse,
    RecipeResponse,
    ShareResponse,
)
from recipeshare.security import get_current_user_id
from recipeshare.services.listing import DEFAULT_PAGE_SIZE, ListingParams
from recipeshare.services.recipe_service import ImageUpload, RecipeFields, recipe_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/recipes", tags=["Recipes"])

AUTH_RESPONSES = {
    403: {"description": "Missing or invalid token", "model": ErrorResponse},
}


async def _read_image(image: Optional[UploadFile]) -> Optional[ImageUpload]:
    """An empty file input arrives as an UploadFile with no filename."""
    if image is None or not image.filename:
        return None
    try:
        content = await image.read()
    finally:
        await image.close()
    logger.info("Received image upload: filename=%s, size=%d bytes", image.filename, len(content))
    return ImageUpload(filename=image.filename, content=content, content_length=image.size)


# ══════════════════════════════════════════════════════════════════════════
# Catalog & Listing
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/categories",
    response_model=CatalogResponse,
    summary="Recipe categories and sort options",
)
async def get_catalog(response: Response) -> CatalogResponse:
    response.headers["Cache-Control"] = "public, max-age=86400"
    return CatalogResponse(categories=RECIPE_CATEGORIES, sort_options=SORT_OPTIONS)


@router.get(
    "",
    response_model=RecipeListResponse,
    responses={400: {"description": "Invalid paging or sort value", "model": ErrorResponse}},
    summary="List recipes (filter → sort → paginate)",
    description=(
        "Filters by title substring and category, sorts by popular / recent / quick / "
        "alpha, then returns one page. totalRecipes counts the filtered set."
    ),
)
async def list_recipes(
    response: Response,
    page: int = Query(default=1, description="1-based page number"),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, description="Recipes per page (1-100)"),
    search: Optional[str] = Query(default=None, description="Case-insensitive title substring"),
    category: Optional[str] = Query(default=None, description="Category value, or 'all'"),
    sort: Optional[str] = Query(
        default=None,
        description="popular | recent | quick | alpha (prepTime and title also accepted)",
    ),
    db: AsyncSession = Depends(get_db_session),
) -> RecipeListResponse:
    params = ListingParams.from_query(
        page=page, limit=limit, search=search, category=category, sort=sort
    )
    result = await recipe_service.list_recipes(db, params)
    response.headers["X-Total-Count"] = str(result.total_recipes)
    return result


# ══════════════════════════════════════════════════════════════════════════
# CRUD
# ══════════════════════════════════════════════════════════════════════════


@router.post(
    "",
    status_code=201,
    response_model=RecipeMutationResponse,
    responses={
        400: {"description": "Missing or invalid fields", "model": ErrorResponse},
        **AUTH_RESPONSES,
    },
    summary="Create a recipe",
)
async def create_recipe(
    title: Optional[str] = Form(default=None),
    ingredients: Optional[str] = Form(default=None, description="One ingredient per line"),
    instructions: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    prep_time: Optional[str] = Form(default=None, alias="prepTime"),
    category: Optional[str] = Form(default=None),
    image: Optional[UploadFile] = File(default=None),
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> RecipeMutationResponse:
    fields = RecipeFields(
        title=title,
        description=description,
        ingredients=ingredients,
        instructions=instructions,
        prep_time=prep_time,
        category=category,
    )
    recipe = await recipe_service.create_recipe(db, user_id, fields, await _read_image(image))
    return RecipeMutationResponse(message="Recipe created successfully", recipe=recipe)


@router.get(
    "/{recipe_id}",
    response_model=RecipeResponse,
    responses={404: {"description": "Recipe not found", "model": ErrorResponse}},
    summary="Get a single recipe",
)
async def get_recipe(
    recipe_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
) -> RecipeResponse:
    return await recipe_service.get_recipe(db, recipe_id)


@router.put(
    "/{recipe_id}",
    response_model=RecipeMutationResponse,
    responses={
        400: {"description": "Invalid field", "model": ErrorResponse},
        404: {"description": "Recipe not found or not authorized", "model": ErrorResponse},
        **AUTH_RESPONSES,
    },
    summary="Update your recipe",
    description="Blank or omitted fields keep their current value. A new image replaces the old one.",
)
async def update_recipe(
    recipe_id: uuid.UUID,
    title: Optional[str] = Form(default=None),
    ingredients: Optional[str] = Form(default=None),
    instructions: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    prep_time: Optional[str] = Form(default=None, alias="prepTime"),
    category: Optional[str] = Form(default=None),
    image: Optional[UploadFile] = File(default=None),
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> RecipeMutationResponse:
    fields = RecipeFields(
        title=title,
        description=description,
        ingredients=ingredients,
        instructions=instructions,
        prep_time=prep_time,
        category=category,
    )
    recipe = await recipe_service.update_recipe(
        db, recipe_id, user_id, fields, await _read_image(image)
    )
    return RecipeMutationResponse(message="Recipe updated successfully", recipe=recipe)


@router.delete(
    "/{recipe_id}",
    response_model=MessageResponse,
    responses={
        404: {"description": "Recipe not found or not authorized", "model": ErrorResponse},
        **AUTH_RESPONSES,
    },
    summary="Delete your recipe",
)
async def delete_recipe(
    recipe_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await recipe_service.delete_recipe(db, recipe_id, user_id)
    return MessageResponse(message="Recipe deleted successfully")


# ══════════════════════════════════════════════════════════════════════════
# Ratings & Sharing
# ══════════════════════════════════════════════════════════════════════════


@router.post(
    "/{recipe_id}/rating",
    response_model=RecipeMutationResponse,
    responses={
        400: {"description": "Rating outside 1-5 or not a half step", "model": ErrorResponse},
        404: {"description": "Recipe not found", "model": ErrorResponse},
        **AUTH_RESPONSES,
    },
    summary="Rate a recipe",
    description="Rating again replaces your previous rating.",
)
async def rate_recipe(
    recipe_id: uuid.UUID,
    body: RatingRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> RecipeMutationResponse:
    recipe = await recipe_service.rate_recipe(db, recipe_id, user_id, body.rating)
    return RecipeMutationResponse(message="Rating updated successfully", recipe=recipe)


@router.get(
    "/{recipe_id}/ratings",
    response_model=RatingSummary,
    responses={404: {"description": "Recipe not found", "model": ErrorResponse}},
    summary="Rating average, count and distribution",
)
async def get_ratings(
    recipe_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
) -> RatingSummary:
    return await recipe_service.rating_summary(db, recipe_id)


@router.get(
    "/{recipe_id}/share",
    response_model=ShareResponse,
    responses={404: {"description": "Recipe not found", "model": ErrorResponse}},
    summary="Social share links for a recipe",
)
async def share_recipe(
    recipe_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
) -> ShareResponse:
    return await recipe_service.share_links(db, recipe_id)
