"""
RecipeShare Backend — Recipe Listing Pipeline
===============================================

What:  Builds the filter → sort → paginate queries behind GET /api/recipes.
How:   `ListingParams.from_query()` normalizes raw query parameters once;
       `page_query()` and `count_query()` turn them into SQLAlchemy selects
       that share the exact same WHERE clause, so totalRecipes always counts
       the filtered set the page was drawn from.

Pipeline:
    1. Filter:   title contains `search` (case-insensitive, LIKE wildcards in
                 the input are matched literally); category equals `category`
                 unless it is blank or "all"
    2. Sort:     popular | recent | quick | alpha (prepTime / title accepted as
                 aliases); ties break on created_at DESC then id, so paging
                 never repeats or skips a row
    3. Paginate: OFFSET (page - 1) * limit LIMIT limit
"""

import math
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import Select, func, select

from recipeshare.catalog import ALL_CATEGORIES, DEFAULT_SORT, SORT_ALIASES, normalize_category
from recipeshare.exceptions import ValidationError
from recipeshare.models.recipe import Recipe

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# Largest OFFSET a signed 64-bit SQL integer can carry
MAX_OFFSET = 2**63 - 1


@dataclass(frozen=True)
class ListingParams:
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    search: Optional[str] = None
    category: Optional[str] = None
    sort: str = DEFAULT_SORT

    @classmethod
    def from_query(
        cls,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        search: Optional[str] = None,
        category: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> "ListingParams":
        """
        Normalize raw query values.

        Raises:
            ValidationError: page < 1, limit outside 1..100, or an unknown sort key
        """
        if page < 1:
            raise ValidationError(message="page must be 1 or greater", field="page")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(
                message=f"limit must be between 1 and {MAX_PAGE_SIZE}", field="limit"
            )

        sort_key = (sort or "").strip() or DEFAULT_SORT
        if sort_key not in SORT_ALIASES:
            raise ValidationError(
                message=f"Invalid sort '{sort_key}'. Must be one of: {', '.join(SORT_ALIASES)}",
                field="sort",
                context={"allowed": list(SORT_ALIASES)},
            )

        search = (search or "").strip() or None

        category = normalize_category(category)
        if category == ALL_CATEGORIES:
            category = None

        return cls(
            page=page,
            limit=limit,
            search=search,
            category=category,
            sort=SORT_ALIASES[sort_key],
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def beyond_any_offset(self) -> bool:
        """True when the page starts past any row the database could hold."""
        return self.offset > MAX_OFFSET


def _filtered(stmt: Select, params: ListingParams) -> Select:
    if params.search:
        stmt = stmt.where(Recipe.title.icontains(params.search, autoescape=True))
    if params.category:
        stmt = stmt.where(Recipe.category == params.category)
    return stmt


def order_by_clauses(sort: str) -> List:
    """ORDER BY terms for a canonical sort key (see catalog.SORT_ALIASES)."""
    if sort == "popular":
        primary = [Recipe.popularity.desc()]
    elif sort == "quick":
        # FALSE sorts before TRUE, so recipes without a prep time go last
        primary = [Recipe.prep_time.is_(None), Recipe.prep_time.asc()]
    elif sort == "alpha":
        primary = [func.lower(Recipe.title).asc()]
    else:
        primary = []
    return primary + [Recipe.created_at.desc(), Recipe.id.asc()]


def page_query(params: ListingParams) -> Select:
    stmt = _filtered(select(Recipe), params)
    return stmt.order_by(*order_by_clauses(params.sort)).offset(params.offset).limit(params.limit)


def count_query(params: ListingParams) -> Select:
    return _filtered(select(func.count(Recipe.id)), params)


def total_pages(total: int, limit: int) -> int:
    """ceil(total / limit); 0 when nothing matched."""
    return math.ceil(total / limit) if total else 0
