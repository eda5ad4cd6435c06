"""
RecipeShare Backend — Rating Arithmetic and Share Link Tests
"""

import uuid
from urllib.parse import parse_qs, urlparse

import pytest

from recipeshare.exceptions import ValidationError
from recipeshare.services.ratings import average, distribution, star_breakdown, validate_rating
from recipeshare.services.share_service import build_share_response


class TestValidateRating:
    @pytest.mark.parametrize("value", [1, 1.5, 3, 4.5, 5])
    def test_accepts_half_steps(self, value):
        assert validate_rating(value) == float(value)

    @pytest.mark.parametrize("value", [0, 0.5, 5.5, 6, 3.3, -1, float("nan")])
    def test_rejects(self, value):
        with pytest.raises(ValidationError, match="between 1 and 5"):
            validate_rating(value)


class TestAggregates:
    def test_average_rounds_to_one_decimal(self):
        assert average([5, 4, 4]) == 4.3
        assert average([4.5]) == 4.5

    def test_average_rounds_half_up(self):
        assert average([4.5, 4.0]) == 4.3
        assert average([5, 3.5]) == 4.3
        assert average([1.5, 1.0]) == 1.3

    def test_average_of_nothing(self):
        assert average([]) == 0.0

    def test_distribution_counts_half_stars_down(self):
        assert distribution([5, 4.5, 4, 1.5, 1]) == {"5": 1, "4": 2, "3": 0, "2": 0, "1": 2}

    def test_distribution_key_order(self):
        assert list(distribution([])) == ["5", "4", "3", "2", "1"]


class TestStarBreakdown:
    @pytest.mark.parametrize(
        "rating, expected",
        [
            (0.0, {"full": 0, "half": 0, "empty": 5}),
            (3.0, {"full": 3, "half": 0, "empty": 2}),
            (3.5, {"full": 3, "half": 1, "empty": 1}),
            (4.3, {"full": 4, "half": 1, "empty": 0}),
            (5.0, {"full": 5, "half": 0, "empty": 0}),
        ],
    )
    def test_breakdown(self, rating, expected):
        assert star_breakdown(rating) == expected


class TestShareLinks:
    def test_page_url_and_text(self):
        recipe_id = uuid.uuid4()
        share = build_share_response(recipe_id, "Mac & Cheese", base_url="https://recipes.example/")
        assert share.url == f"https://recipes.example/recipes/{recipe_id}"
        assert share.text == "Check out this recipe: Mac & Cheese"

    def test_covers_every_platform(self):
        share = build_share_response(uuid.uuid4(), "Soup", base_url="https://recipes.example")
        assert [link.name for link in share.links] == [
            "Facebook",
            "Twitter",
            "WhatsApp",
            "Pinterest",
            "Email",
            "LinkedIn",
            "Reddit",
            "Telegram",
        ]

    def test_values_are_url_encoded(self):
        recipe_id = uuid.uuid4()
        share = build_share_response(recipe_id, "Mac & Cheese", base_url="https://recipes.example")
        links = {link.name: link.url for link in share.links}

        reddit = parse_qs(urlparse(links["Reddit"]).query)
        assert reddit["title"] == ["Mac & Cheese"]
        assert reddit["url"] == [f"https://recipes.example/recipes/{recipe_id}"]
        assert "Mac%20%26%20Cheese" in links["Pinterest"]
        assert links["Email"].startswith("mailto:?subject=Mac%20%26%20Cheese")
