"""
RecipeShare Backend — Recipe Service (Business Logic Orchestrator)
====================================================================

What:  Create, read, update, delete, list, rate and share recipes.
How:   Composes FileService (images), the listing query builder and the
       rating helpers on top of the request's AsyncSession.
Who:   Called by routes/recipes.py.
When:  For every recipe operation.

Ownership:
    Update and delete look the recipe up by (id, user_id) in one query, so a
    recipe that exists but belongs to someone else is indistinguishable from
    one that does not exist: both give 404 "Recipe not found or not authorized".

Images:
    Stored before the row is written. If the database write then fails, the
    new file is removed again; the old file of a replaced image is removed
    only after the row points at the new one.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from recipeshare.catalog import is_known_category, normalize_category
from recipeshare.exceptions import DatabaseError, NotFoundError, ValidationError
from recipeshare.models.recipe import Rating, Recipe
from recipeshare.schemas.recipe import (
    RatingSummary,
    RecipeListResponse,
    RecipeResponse,
    ShareResponse,
    StarBreakdown,
)
from recipeshare.services import listing, ratings
from recipeshare.services.file_service import file_service
from recipeshare.services.share_service import build_share_response

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200
MAX_PREP_TIME = 24 * 60

NOT_FOUND_OR_NOT_OWNER = "Recipe not found or not authorized"

# Dialects whose INSERT supports ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def rating_upsert(dialect_name: str, recipe_id: uuid.UUID, user_id: uuid.UUID, value: float) -> Any:
    """
    INSERT one user's rating, or overwrite it when (recipe_id, user_id) exists.

    A single statement, so two first ratings racing from the same user end
    as one row instead of a unique-constraint error.
    """
    now = datetime.now(timezone.utc)
    stmt = _UPSERT_INSERTS[dialect_name](Rating).values(
        id=uuid.uuid4(),
        recipe_id=recipe_id,
        user_id=user_id,
        value=value,
        created_at=now,
        updated_at=now,
    )
    return stmt.on_conflict_do_update(
        index_elements=[Rating.recipe_id, Rating.user_id],
        set_={"value": value, "updated_at": now},
    )


@dataclass
class RecipeFields:
    """Raw form values; None or blank means "not provided"."""
    title: Optional[str] = None
    description: Optional[str] = None
    ingredients: Optional[str] = None
    instructions: Optional[str] = None
    prep_time: Optional[str] = None
    category: Optional[str] = None


@dataclass
class ImageUpload:
    filename: str
    content: bytes
    content_length: Optional[int] = None


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _clean_title(value: str) -> str:
    title = value.strip()
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(
            message=f"Title must be at most {MAX_TITLE_LENGTH} characters",
            field="title",
        )
    return title


def _parse_prep_time(value: Optional[str]) -> Optional[int]:
    if _blank(value):
        return None
    try:
        minutes = int(value.strip())
    except ValueError:
        raise ValidationError(
            message="Prep time must be a whole number of minutes",
            field="prepTime",
            context={"value": value},
        )
    if not 0 <= minutes <= MAX_PREP_TIME:
        raise ValidationError(
            message=f"Prep time must be between 0 and {MAX_PREP_TIME} minutes",
            field="prepTime",
            context={"value": minutes},
        )
    return minutes


def _parse_category(value: Optional[str]) -> Optional[str]:
    category = normalize_category(value)
    if category is not None and not is_known_category(category):
        raise ValidationError(
            message=f"Unknown category '{category}'",
            field="category",
            context={"value": category},
        )
    return category


class RecipeService:
    """
    Business logic layer for recipe operations.

    Error Handling Strategy:
        Application exceptions (ValidationError, NotFoundError,
        FileStorageError) propagate unchanged. SQLAlchemy errors are logged
        and wrapped in DatabaseError so SQL never reaches the client.
    """

    # ── Create ────────────────────────────────────────────────────────────

    async def create_recipe(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        fields: RecipeFields,
        image: Optional[ImageUpload] = None,
    ) -> RecipeResponse:
        """
        Validate the form, store the optional image, insert the row.

        Raises:
            ValidationError: missing title/ingredients/instructions or a bad field
            FileStorageError: the image could not be written
            DatabaseError: the insert failed
        """
        if _blank(fields.title) or _blank(fields.ingredients) or _blank(fields.instructions):
            raise ValidationError(message="Title, ingredients and instructions are required")

        recipe = Recipe(
            title=_clean_title(fields.title),
            description=(fields.description or "").strip(),
            ingredients=fields.ingredients.strip(),
            instructions=fields.instructions.strip(),
            prep_time=_parse_prep_time(fields.prep_time),
            category=_parse_category(fields.category),
            popularity=0.0,
            rating_count=0,
            user_id=user_id,
        )

        image_path = None
        if image is not None:
            image_path = await file_service.store_image(
                image.filename, image.content, image.content_length
            )
            recipe.image_path = image_path

        try:
            db.add(recipe)
            await db.flush()
        except SQLAlchemyError as e:
            await file_service.delete_image(image_path)
            logger.error("Database error creating recipe: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to create recipe. Please try again.",
                context={"error_type": type(e).__name__},
            )

        logger.info("Recipe created: %s by user %s", recipe.id, user_id)
        return RecipeResponse.from_model(recipe)

    # ── Read ──────────────────────────────────────────────────────────────

    async def get_recipe(self, db: AsyncSession, recipe_id: uuid.UUID) -> RecipeResponse:
        recipe = await self._load(db, recipe_id)
        return RecipeResponse.from_model(recipe)

    async def list_recipes(self, db: AsyncSession, params: listing.ListingParams) -> RecipeListResponse:
        """
        One page of the filter → sort → paginate pipeline.

        A page past the end is not an error; it comes back with no recipes.
        """
        try:
            recipes: List[Recipe] = []
            if not params.beyond_any_offset:
                result = await db.execute(listing.page_query(params))
                recipes = list(result.scalars().all())

            count_result = await db.execute(listing.count_query(params))
            total = count_result.scalar() or 0
        except SQLAlchemyError as e:
            logger.error("Database error listing recipes: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to retrieve recipes. Please try again.",
                context={"error_type": type(e).__name__},
            )

        return RecipeListResponse(
            recipes=[RecipeResponse.from_model(r) for r in recipes],
            current_page=params.page,
            total_pages=listing.total_pages(total, params.limit),
            total_recipes=total,
        )

    # ── Update ────────────────────────────────────────────────────────────

    async def update_recipe(
        self,
        db: AsyncSession,
        recipe_id: uuid.UUID,
        user_id: uuid.UUID,
        fields: RecipeFields,
        image: Optional[ImageUpload] = None,
    ) -> RecipeResponse:
        """
        Owner-only partial update. Blank or absent fields keep their stored value.

        Raises:
            NotFoundError: no such recipe, or it belongs to another user
            ValidationError: a provided field is invalid
        """
        recipe = await self._load_owned(db, recipe_id, user_id)

        # Validate everything before touching the row or the disk
        title = None if _blank(fields.title) else _clean_title(fields.title)
        prep_time = _parse_prep_time(fields.prep_time)
        category = _parse_category(fields.category)

        if title is not None:
            recipe.title = title
        if not _blank(fields.description):
            recipe.description = fields.description.strip()
        if not _blank(fields.ingredients):
            recipe.ingredients = fields.ingredients.strip()
        if not _blank(fields.instructions):
            recipe.instructions = fields.instructions.strip()
        if prep_time is not None:
            recipe.prep_time = prep_time
        if category is not None:
            recipe.category = category

        old_image_path = None
        new_image_path = None
        if image is not None:
            new_image_path = await file_service.store_image(
                image.filename, image.content, image.content_length
            )
            old_image_path = recipe.image_path
            recipe.image_path = new_image_path

        recipe.updated_at = datetime.now(timezone.utc)

        try:
            await db.flush()
        except SQLAlchemyError as e:
            await file_service.delete_image(new_image_path)
            logger.error("Database error updating recipe %s: %s", recipe_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to update recipe. Please try again.",
                context={"recipe_id": str(recipe_id)},
            )

        await file_service.delete_image(old_image_path)
        logger.info("Recipe updated: %s", recipe_id)
        return RecipeResponse.from_model(recipe)

    # ── Delete ────────────────────────────────────────────────────────────

    async def delete_recipe(
        self,
        db: AsyncSession,
        recipe_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> None:
        """
        Owner-only delete of the recipe, its ratings and its image.

        Raises:
            NotFoundError: no such recipe, or it belongs to another user
        """
        recipe = await self._load_owned(db, recipe_id, user_id)
        image_path = recipe.image_path

        try:
            await db.execute(delete(Rating).where(Rating.recipe_id == recipe.id))
            await db.delete(recipe)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting recipe %s: %s", recipe_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to delete recipe. Please try again.",
                context={"recipe_id": str(recipe_id)},
            )

        await file_service.delete_image(image_path)
        logger.info("Recipe deleted: %s by user %s", recipe_id, user_id)

    # ── Ratings ───────────────────────────────────────────────────────────

    async def rate_recipe(
        self,
        db: AsyncSession,
        recipe_id: uuid.UUID,
        user_id: uuid.UUID,
        value: float,
    ) -> RecipeResponse:
        """
        Record (or replace) one user's rating, then recompute the recipe's
        popularity and rating_count from all of its ratings.

        Raises:
            ValidationError: rating outside 1..5 or not a multiple of 0.5
            NotFoundError: no such recipe
        """
        value = ratings.validate_rating(value)
        recipe = await self._load(db, recipe_id)

        try:
            dialect_name = db.get_bind().dialect.name
            await db.execute(rating_upsert(dialect_name, recipe_id, user_id, value))

            values = await self._rating_values(db, recipe_id)
            recipe.popularity = ratings.average(values)
            recipe.rating_count = len(values)
            recipe.updated_at = datetime.now(timezone.utc)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error rating recipe %s: %s", recipe_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to save rating. Please try again.",
                context={"recipe_id": str(recipe_id)},
            )

        logger.info(
            "Recipe %s rated %.1f by %s (avg=%.1f over %d)",
            recipe_id, value, user_id, recipe.popularity, recipe.rating_count,
        )
        return RecipeResponse.from_model(recipe)

    async def rating_summary(self, db: AsyncSession, recipe_id: uuid.UUID) -> RatingSummary:
        await self._load(db, recipe_id)
        try:
            values = await self._rating_values(db, recipe_id)
        except SQLAlchemyError as e:
            logger.error("Database error reading ratings for %s: %s", recipe_id, str(e))
            raise DatabaseError(
                message="Failed to retrieve ratings. Please try again.",
                context={"recipe_id": str(recipe_id)},
            )

        avg = ratings.average(values)
        return RatingSummary(
            recipe_id=recipe_id,
            average=avg,
            count=len(values),
            distribution=ratings.distribution(values),
            stars=StarBreakdown(**ratings.star_breakdown(avg)),
        )

    # ── Sharing ───────────────────────────────────────────────────────────

    async def share_links(self, db: AsyncSession, recipe_id: uuid.UUID) -> ShareResponse:
        recipe = await self._load(db, recipe_id)
        return build_share_response(recipe.id, recipe.title)

    # ── Internals ─────────────────────────────────────────────────────────

    async def _rating_values(self, db: AsyncSession, recipe_id: uuid.UUID) -> List[float]:
        result = await db.execute(select(Rating.value).where(Rating.recipe_id == recipe_id))
        return list(result.scalars().all())

    async def _load(self, db: AsyncSession, recipe_id: uuid.UUID) -> Recipe:
        """
        Raises:
            NotFoundError("Recipe not found")
            DatabaseError: query execution failed
        """
        try:
            result = await db.execute(select(Recipe).where(Recipe.id == recipe_id))
            recipe = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching recipe %s: %s", recipe_id, str(e))
            raise DatabaseError(
                message="Failed to retrieve recipe. Please try again.",
                context={"recipe_id": str(recipe_id)},
            )

        if recipe is None:
            raise NotFoundError(
                resource="recipe", resource_id=str(recipe_id), message="Recipe not found"
            )
        return recipe

    async def _load_owned(
        self,
        db: AsyncSession,
        recipe_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Recipe:
        try:
            result = await db.execute(
                select(Recipe).where(Recipe.id == recipe_id, Recipe.user_id == user_id)
            )
            recipe = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching recipe %s: %s", recipe_id, str(e))
            raise DatabaseError(
                message="Failed to retrieve recipe. Please try again.",
                context={"recipe_id": str(recipe_id)},
            )

        if recipe is None:
            raise NotFoundError(
                resource="recipe", resource_id=str(recipe_id), message=NOT_FOUND_OR_NOT_OWNER
            )
        return recipe


# ── Singleton Instance ────────────────────────────────────────────────────
recipe_service = RecipeService()
