"""URL slug generation for posts."""

import re
import unicodedata

from sqlalchemy.orm import Session

from src.models.post import Post

FALLBACK_SLUG = "post"


def slugify(text: str) -> str:
    """Convert a title into a lower-case, hyphenated ASCII slug.

    >>> slugify("Stage 2 ECU Tune – Megane RS!")
    'stage-2-ecu-tune-megane-rs'
    """
    text = unicodedata.normalize("NFKD", text)
    text = "".join(c for c in text if not unicodedata.combining(c))
    text = text.lower().strip()
    text = re.sub(r"\s+", "-", text)
    text = re.sub(r"[^\w\-]+", "", text, flags=re.ASCII)
    text = re.sub(r"-{2,}", "-", text)
    return text.strip("-")


def slug_exists(db: Session, slug: str) -> bool:
    return db.query(Post.id).filter(Post.slug == slug).first() is not None


def generate_unique_slug(db: Session, title: str) -> str:
    """Slugify a title, appending -2, -3, ... until no post uses it."""
    base_slug = slugify(title) or FALLBACK_SLUG
    slug = base_slug
    counter = 2
    while slug_exists(db, slug):
        slug = f"{base_slug}-{counter}"
        counter += 1
    return slug
