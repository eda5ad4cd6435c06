"""
RecipeShare Backend — Share Links
===================================

What:  Builds the social share targets offered on a recipe's detail view.
How:   Every target is a URL template; the recipe page URL, title and share
       text are URL-encoded before substitution.
"""

import uuid
from typing import Optional
from urllib.parse import quote

from recipeshare.config import settings
from recipeshare.schemas.recipe import ShareLink, ShareResponse

SHARE_TARGETS = [
    ("Facebook", "https://www.facebook.com/sharer/sharer.php?u={url}"),
    ("Twitter", "https://twitter.com/intent/tweet?url={url}&text={text}"),
    ("WhatsApp", "https://wa.me/?text={text}%20{url}"),
    ("Pinterest", "https://pinterest.com/pin/create/button/?url={url}&description={title}"),
    ("Email", "mailto:?subject={title}&body={text}%0A%0A{url}"),
    ("LinkedIn", "https://www.linkedin.com/sharing/share-offsite/?url={url}"),
    ("Reddit", "https://www.reddit.com/submit?url={url}&title={title}"),
    ("Telegram", "https://t.me/share/url?url={url}&text={text}"),
]


def recipe_page_url(recipe_id: uuid.UUID, base_url: Optional[str] = None) -> str:
    base = (base_url or settings.public_base_url).rstrip("/")
    return f"{base}/recipes/{recipe_id}"


def build_share_response(
    recipe_id: uuid.UUID,
    title: str,
    base_url: Optional[str] = None,
) -> ShareResponse:
    page_url = recipe_page_url(recipe_id, base_url)
    text = f"Check out this recipe: {title}"

    encoded = {
        "url": quote(page_url, safe=""),
        "title": quote(title, safe=""),
        "text": quote(text, safe=""),
    }
    links = [
        ShareLink(name=name, url=template.format(**encoded))
        for name, template in SHARE_TARGETS
    ]
    return ShareResponse(url=page_url, title=title, text=text, links=links)
