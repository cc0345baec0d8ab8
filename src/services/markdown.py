"""Markdown helpers for post content."""

import re
from dataclasses import dataclass
from urllib.parse import urlparse

IMAGE_PATTERN = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")
LINK_PATTERN = re.compile(r"\[([^\]]+)\]\([^)]+\)")

ALLOWED_IMAGE_HOSTS = ("res.cloudinary.com", "images.unsplash.com")

EXCERPT_LENGTH = 160


@dataclass(frozen=True)
class MarkdownImage:
    url: str
    alt_text: str | None


def extract_images(markdown: str) -> list[MarkdownImage]:
    """Return every ``![alt](url)`` image in document order."""
    return [
        MarkdownImage(url=url.strip(), alt_text=alt.strip() or None)
        for alt, url in IMAGE_PATTERN.findall(markdown)
    ]


def extract_image_urls(markdown: str) -> list[str]:
    return [image.url for image in extract_images(markdown)]


def generate_excerpt(markdown: str, max_length: int = EXCERPT_LENGTH) -> str:
    """Plain-text preview of a markdown document, truncated with an ellipsis."""
    text = IMAGE_PATTERN.sub("", markdown)
    text = LINK_PATTERN.sub(r"\1", text)
    text = re.sub(r"^#{1,6}\s+", "", text, flags=re.MULTILINE)
    text = re.sub(r"(\*\*|__)(.*?)\1", r"\2", text)
    text = re.sub(r"(\*|_)(.*?)\1", r"\2", text)
    text = re.sub(r"```[\s\S]*?```", "", text)
    text = re.sub(r"`([^`]+)`", r"\1", text)
    text = re.sub(r"^>\s+", "", text, flags=re.MULTILINE)
    text = re.sub(r"^[-*_]{3,}\s*$", "", text, flags=re.MULTILINE)
    text = re.sub(r"\s+", " ", text).strip()

    if len(text) > max_length:
        text = text[: max_length - 3].strip() + "..."
    return text


def validate_markdown(markdown: str) -> list[str]:
    """Return a list of problems with the content (empty when valid)."""
    issues = []
    if not markdown or not markdown.strip():
        issues.append("Content cannot be empty")

    for url in extract_image_urls(markdown or ""):
        if not url.startswith(("http://", "https://")):
            issues.append(f"Invalid image URL: {url}")
    return issues


def is_allowed_image_url(src: str | None) -> bool:
    """Check a thumbnail/OpenGraph image against the trusted hosts."""
    if not src:
        return False
    if src.startswith("/"):
        return True

    host = (urlparse(src).hostname or "").lower()
    if host in ALLOWED_IMAGE_HOSTS:
        return True
    return host == "amazonaws.com" or host.endswith(".amazonaws.com")
