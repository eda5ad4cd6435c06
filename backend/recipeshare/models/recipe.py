"""
RecipeShare Backend — Recipe and Rating ORM Models
====================================================

What:  SQLAlchemy models for the `recipes` and `recipe_ratings` tables.

Query Patterns:
    - Dashboard listing: ORDER BY created_at DESC / popularity DESC / prep_time /
      lower(title), filtered by category and title substring, LIMIT/OFFSET
      → idx_recipes_created_at, idx_recipes_category, idx_recipes_popularity
    - Owner-scoped update/delete: WHERE id = :id AND user_id = :user
    - Rating upsert: WHERE recipe_id = :id AND user_id = :user
      → uq_recipe_ratings_recipe_user

Denormalization:
    `popularity` (mean rating) and `rating_count` live on the recipe row and are
    recomputed whenever a rating is written, so the listing can sort on
    popularity without joining recipe_ratings.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from recipeshare.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Recipe(Base):
    """A user-authored recipe."""

    __tablename__ = "recipes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Newline-separated list, one ingredient per line
    ingredients: Mapped[str] = mapped_column(Text, nullable=False, default="")
    instructions: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Minutes; NULL sorts last for the "quick" ordering
    prep_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Relative path from STORAGE_ROOT (YYYY/MM/DD/<uuid>.<ext>)
    image_path: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    popularity: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.0,
        comment="Mean of recipe_ratings.value, rounded to one decimal",
    )
    rating_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        Index("idx_recipes_created_at", created_at.desc()),
        Index("idx_recipes_category", "category"),
        Index("idx_recipes_popularity", popularity.desc()),
    )

    def __repr__(self) -> str:
        return f"<Recipe(id={self.id}, title='{self.title}', popularity={self.popularity})>"


class Rating(Base):
    """One user's star rating for one recipe (1.0 to 5.0 in half steps)."""

    __tablename__ = "recipe_ratings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    recipe_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("recipes.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    value: Mapped[float] = mapped_column(Float, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        UniqueConstraint("recipe_id", "user_id", name="uq_recipe_ratings_recipe_user"),
    )

    def __repr__(self) -> str:
        return f"<Rating(recipe_id={self.recipe_id}, user_id={self.user_id}, value={self.value})>"
