"""Create users, recipes and recipe_ratings tables

Revision ID: 001
Revises: None
Create Date: 2024-01-15 00:00:00.000000+00:00

What:  Initial schema for accounts, recipes and per-user star ratings.
How:   Generic Uuid/DateTime types, so the same migration runs on PostgreSQL
       and on SQLite.

Rollback: downgrade() drops all three tables (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "username",
            sa.String(50),
            nullable=False,
            comment="Login name, unique across all users",
        ),
        sa.Column(
            "password_hash",
            sa.String(255),
            nullable=False,
            comment="bcrypt hash produced by passlib",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "recipes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column(
            "ingredients",
            sa.Text(),
            nullable=False,
            server_default=sa.text("''"),
            comment="Newline-separated, one ingredient per line",
        ),
        sa.Column("instructions", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("prep_time", sa.Integer(), nullable=True, comment="Minutes"),
        sa.Column("category", sa.String(50), nullable=True),
        sa.Column(
            "image_path",
            sa.String(255),
            nullable=True,
            comment="Relative path from storage root to the uploaded image",
        ),
        sa.Column(
            "popularity",
            sa.Float(),
            nullable=False,
            server_default=sa.text("0"),
            comment="Mean of recipe_ratings.value, rounded to one decimal",
        ),
        sa.Column("rating_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_recipes_user_id", "recipes", ["user_id"])
    op.create_index("idx_recipes_created_at", "recipes", [sa.text("created_at DESC")])
    op.create_index("idx_recipes_category", "recipes", ["category"])
    op.create_index("idx_recipes_popularity", "recipes", [sa.text("popularity DESC")])

    op.create_table(
        "recipe_ratings",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("recipe_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("value", sa.Float(), nullable=False, comment="1.0 to 5.0 in steps of 0.5"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["recipe_id"], ["recipes.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("recipe_id", "user_id", name="uq_recipe_ratings_recipe_user"),
    )


def downgrade() -> None:
    """Drop every table. All accounts, recipes and ratings are lost."""
    op.drop_table("recipe_ratings")
    op.drop_index("idx_recipes_popularity", table_name="recipes")
    op.drop_index("idx_recipes_category", table_name="recipes")
    op.drop_index("idx_recipes_created_at", table_name="recipes")
    op.drop_index("ix_recipes_user_id", table_name="recipes")
    op.drop_table("recipes")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
