"""
RecipeShare Backend — Listing Pipeline Tests
==============================================

What:  Parameter normalization, generated ORDER BY clauses, and the full
       filter → sort → paginate pipeline against a real SQLite database.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from recipeshare.exceptions import ValidationError
from recipeshare.models.recipe import Recipe
from recipeshare.services.listing import ListingParams, page_query, total_pages
from recipeshare.services.recipe_service import recipe_service


class TestListingParams:
    def test_defaults(self):
        params = ListingParams.from_query()
        assert params == ListingParams(page=1, limit=10, search=None, category=None, sort="recent")
        assert params.offset == 0

    def test_offset(self):
        assert ListingParams.from_query(page=3, limit=20).offset == 40

    def test_offset_beyond_sql_integer_range(self):
        assert not ListingParams.from_query(page=3, limit=20).beyond_any_offset
        assert ListingParams.from_query(page=10**17, limit=100).beyond_any_offset

    @pytest.mark.parametrize("page", [0, -1])
    def test_rejects_page_below_one(self, page):
        with pytest.raises(ValidationError, match="page"):
            ListingParams.from_query(page=page)

    @pytest.mark.parametrize("limit", [0, 101])
    def test_rejects_limit_out_of_range(self, limit):
        with pytest.raises(ValidationError, match="limit"):
            ListingParams.from_query(limit=limit)

    def test_rejects_unknown_sort(self):
        with pytest.raises(ValidationError, match="Invalid sort 'spicy'") as exc_info:
            ListingParams.from_query(sort="spicy")
        assert "quick" in exc_info.value.context["allowed"]

    @pytest.mark.parametrize(
        "raw, canonical",
        [("prepTime", "quick"), ("title", "alpha"), ("quick", "quick"), ("popular", "popular"), ("", "recent")],
    )
    def test_sort_aliases(self, raw, canonical):
        assert ListingParams.from_query(sort=raw).sort == canonical

    def test_category_all_means_no_filter(self):
        assert ListingParams.from_query(category="all").category is None
        assert ListingParams.from_query(category=" ALL ").category is None

    def test_category_normalized(self):
        assert ListingParams.from_query(category="  Dinner ").category == "dinner"

    def test_blank_search_ignored(self):
        assert ListingParams.from_query(search="   ").search is None
        assert ListingParams.from_query(search="  soup ").search == "soup"


class TestOrdering:
    def _sql(self, sort: str) -> str:
        params = ListingParams.from_query(sort=sort)
        return str(page_query(params).compile(compile_kwargs={"literal_binds": True}))

    def test_quick_puts_missing_prep_time_last(self):
        sql = self._sql("quick")
        assert "recipes.prep_time IS NULL, recipes.prep_time ASC" in sql

    def test_alpha_is_case_insensitive(self):
        assert "lower(recipes.title) ASC" in self._sql("alpha")

    def test_every_sort_has_stable_tiebreak(self):
        for sort in ("popular", "recent", "quick", "alpha"):
            assert "recipes.created_at DESC, recipes.id ASC" in self._sql(sort)


@pytest.mark.parametrize("total, limit, expected", [(0, 10, 0), (1, 10, 1), (10, 10, 1), (11, 10, 2), (47, 10, 5)])
def test_total_pages(total, limit, expected):
    assert total_pages(total, limit) == expected


# ══════════════════════════════════════════════════════════════════════════
# Pipeline against SQLite
# ══════════════════════════════════════════════════════════════════════════

OWNER = uuid.uuid4()
BASE_TIME = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)

SEED = [
    # title, category, prep_time, popularity
    ("Banana Bread", "baked-goods", 70, 4.5),
    ("apple pie", "dessert", 90, 3.0),
    ("Chicken Soup", "soup", 45, 4.5),
    ("Caesar Salad", "salad", None, 2.0),
    ("50% Whole Wheat Bread", "baked-goods", 120, 0.0),
    ("500 Calorie Soup", "soup", 15, 5.0),
]


@pytest_asyncio.fixture
async def seeded(session_factory):
    """Seeded in SEED order; each recipe is one minute newer than the previous."""
    async with session_factory() as session:
        for i, (title, category, prep_time, popularity) in enumerate(SEED):
            created = BASE_TIME + timedelta(minutes=i)
            session.add(
                Recipe(
                    title=title,
                    description="",
                    ingredients="x",
                    instructions="y",
                    prep_time=prep_time,
                    category=category,
                    popularity=popularity,
                    rating_count=1 if popularity else 0,
                    user_id=OWNER,
                    created_at=created,
                    updated_at=created,
                )
            )
        await session.commit()
    return session_factory


async def _titles(session_factory, **query):
    async with session_factory() as session:
        result = await recipe_service.list_recipes(session, ListingParams.from_query(**query))
    return [r.title for r in result.recipes], result


class TestPipeline:
    @pytest.mark.asyncio
    async def test_recent_is_default(self, seeded):
        titles, result = await _titles(seeded)
        assert titles == [t for t, *_ in reversed(SEED)]
        assert result.total_recipes == 6
        assert result.total_pages == 1
        assert result.current_page == 1

    @pytest.mark.asyncio
    async def test_popular_breaks_ties_by_recency(self, seeded):
        titles, _ = await _titles(seeded, sort="popular")
        assert titles[:3] == ["500 Calorie Soup", "Chicken Soup", "Banana Bread"]
        assert titles[-1] == "50% Whole Wheat Bread"

    @pytest.mark.asyncio
    async def test_quick_sorts_missing_prep_time_last(self, seeded):
        titles, _ = await _titles(seeded, sort="prepTime")
        assert titles == [
            "500 Calorie Soup",
            "Chicken Soup",
            "Banana Bread",
            "apple pie",
            "50% Whole Wheat Bread",
            "Caesar Salad",
        ]

    @pytest.mark.asyncio
    async def test_alpha_ignores_case(self, seeded):
        titles, _ = await _titles(seeded, sort="alpha")
        assert titles == [
            "50% Whole Wheat Bread",
            "500 Calorie Soup",
            "apple pie",
            "Banana Bread",
            "Caesar Salad",
            "Chicken Soup",
        ]

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive_substring(self, seeded):
        titles, result = await _titles(seeded, search="BREAD")
        assert sorted(titles) == ["50% Whole Wheat Bread", "Banana Bread"]
        assert result.total_recipes == 2

    @pytest.mark.asyncio
    async def test_search_wildcards_are_literal(self, seeded):
        titles, _ = await _titles(seeded, search="50%")
        assert titles == ["50% Whole Wheat Bread"]

    @pytest.mark.asyncio
    async def test_category_filter(self, seeded):
        titles, result = await _titles(seeded, category="soup", sort="alpha")
        assert titles == ["500 Calorie Soup", "Chicken Soup"]
        assert result.total_recipes == 2

    @pytest.mark.asyncio
    async def test_filter_then_sort_then_paginate(self, seeded):
        titles, result = await _titles(seeded, search="s", sort="quick", limit=2, page=2)
        # "s" matches Chicken Soup, Caesar Salad and 500 Calorie Soup
        assert titles == ["Caesar Salad"]
        assert result.total_recipes == 3
        assert result.total_pages == 2
        assert result.current_page == 2

    @pytest.mark.asyncio
    async def test_pages_do_not_overlap(self, seeded):
        seen = []
        for page in (1, 2, 3):
            titles, _ = await _titles(seeded, sort="popular", limit=2, page=page)
            seen.extend(titles)
        assert sorted(seen) == sorted(t for t, *_ in SEED)

    @pytest.mark.asyncio
    async def test_page_past_end_is_empty(self, seeded):
        titles, result = await _titles(seeded, page=9)
        assert titles == []
        assert result.total_recipes == 6
        assert result.total_pages == 1

    @pytest.mark.asyncio
    async def test_huge_page_is_empty(self, seeded):
        titles, result = await _titles(seeded, page=10**17, limit=100)
        assert titles == []
        assert result.total_recipes == 6
        assert result.current_page == 10**17

    @pytest.mark.asyncio
    async def test_no_matches(self, seeded):
        titles, result = await _titles(seeded, search="lasagna")
        assert titles == []
        assert result.total_recipes == 0
        assert result.total_pages == 0
