"""Rule-based spam scoring for blog comments.

Each rule adds a weight to the score; the total is clamped to [0, 1]. A
score of 0.7 or more marks the comment as SPAM, anything lower leaves it
PENDING. Nothing is ever approved automatically.
"""

import re
from dataclasses import dataclass, field

from src.models.enums import CommentStatus

SPAM_THRESHOLD = 0.7

HIGH_SEVERITY_PATTERNS = [
    re.compile(r"\b(viagra|cialis|casino|lottery|jackpot|prize\s+winner)\b", re.IGNORECASE),
    re.compile(r"\b(buy\s+now|order\s+now|limited\s+offer|act\s+now|don't\s+miss)\b", re.IGNORECASE),
    re.compile(r"\b(click\s+here|visit\s+my\s+(site|website|blog))\b", re.IGNORECASE),
    re.compile(r"\b(free\s+(money|gift|trial|offer)|earn\s+(cash|money))\b", re.IGNORECASE),
    re.compile(r"\b(cryptocurrency|bitcoin\s+investment|crypto\s+gains)\b", re.IGNORECASE),
    re.compile(r"\b(weight\s+loss|lose\s+\d+\s*(pounds?|kg|lbs?))\b", re.IGNORECASE),
    re.compile(
        r"\b(work\s+from\s+home|make\s+\$?\d+\s*(per|a)\s*(day|week|hour))\b", re.IGNORECASE
    ),
]

MEDIUM_SEVERITY_PATTERNS = [
    re.compile(r"\b(cheap|discount|promo|sale|deal)\b", re.IGNORECASE),
    re.compile(r"\b(subscribe|follow\s+me|check\s+out)\b", re.IGNORECASE),
    re.compile(r"(.)\1{4,}"),  # same character 5+ times
    re.compile(r"!!!+|[?!]{3,}"),
]

LOW_SEVERITY_PATTERNS = [
    re.compile(r"\b(amazing|incredible|unbelievable|best\s+ever)\b", re.IGNORECASE),
    # Low-effort one-liners: "Great post!", "nice."
    re.compile(r"^(great|nice|good|awesome)\s*(post|article|blog)?\s*[!.]*$", re.IGNORECASE),
]

URL_PATTERN = re.compile(r"https?://\S+|www\.\S+|\[url\]|\[link\]", re.IGNORECASE)
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

DISPOSABLE_EMAIL_DOMAINS = frozenset(
    {
        "tempmail.com",
        "guerrillamail.com",
        "throwaway.email",
        "temp-mail.org",
        "fakeinbox.com",
        "mailinator.com",
        "yopmail.com",
    }
)

SCRIPT_TAG_PATTERN = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
HTML_TAG_PATTERN = re.compile(r"<[^>]+>")
WHITESPACE_PATTERN = re.compile(r"\s+")


@dataclass(frozen=True)
class SpamFilterConfig:
    max_links: int = 2
    min_content_length: int = 10
    max_content_length: int = 2000


@dataclass
class SpamCheckResult:
    """Outcome of scoring one comment."""

    status: CommentStatus
    score: float
    reasons: list[str] = field(default_factory=list)

    @property
    def flagged(self) -> bool:
        return self.status == CommentStatus.SPAM


def _count_matches(patterns: list[re.Pattern[str]], text: str) -> int:
    return sum(1 for pattern in patterns if pattern.search(text))


def check_spam(
    name: str,
    content: str,
    email: str | None = None,
    config: SpamFilterConfig | None = None,
) -> SpamCheckResult:
    """Score a comment submission.

    Args:
        name: Display name given by the commenter
        content: Comment body
        email: Optional email address
        config: Length and link thresholds

    Returns:
        SpamCheckResult with status SPAM or PENDING, the clamped score and
        the reasons that contributed to it
    """
    config = config or SpamFilterConfig()
    reasons: list[str] = []
    score = 0.0

    content = content.strip()
    name = name.strip()

    if len(content) < config.min_content_length:
        reasons.append("Comment too short")
        score += 0.3

    if len(content) > config.max_content_length:
        reasons.append("Comment exceeds maximum length")
        score += 0.5

    links = URL_PATTERN.findall(content)
    if len(links) > config.max_links:
        reasons.append(f"Too many links ({len(links)})")
        score += 0.4 + len(links) * 0.1

    # One high-severity hit is enough to cross the spam threshold
    for pattern in HIGH_SEVERITY_PATTERNS:
        if pattern.search(content) or pattern.search(name):
            reasons.append("Contains spam keywords")
            score += 0.7
            break

    medium_matches = _count_matches(MEDIUM_SEVERITY_PATTERNS, content)
    if medium_matches:
        reasons.append("Contains suspicious patterns")
        score += medium_matches * 0.15

    low_matches = _count_matches(LOW_SEVERITY_PATTERNS, content)
    if low_matches:
        reasons.append("Generic or low-effort wording")
        score += low_matches * 0.05

    if email:
        email = email.strip().lower()
        if not EMAIL_PATTERN.match(email):
            reasons.append("Invalid email format")
            score += 0.2
        domain = email.rsplit("@", 1)[-1] if "@" in email else ""
        if domain in DISPOSABLE_EMAIL_DOMAINS:
            reasons.append("Disposable email detected")
            score += 0.3

    letters = [c for c in content if c.isascii() and c.isalpha()]
    upper = sum(1 for c in letters if c.isupper())
    if letters and upper / len(letters) > 0.7 and len(content) > 20:
        reasons.append("Excessive use of capital letters")
        score += 0.2

    if URL_PATTERN.search(name):
        reasons.append("URL in name")
        score += 0.5

    score = round(min(1.0, max(0.0, score)), 4)
    status = CommentStatus.SPAM if score >= SPAM_THRESHOLD else CommentStatus.PENDING
    return SpamCheckResult(status=status, score=score, reasons=reasons)


def sanitize_comment(content: str) -> str:
    """Strip markup from comment text and normalise whitespace.

    Applying it twice gives the same result as applying it once.
    """
    text = SCRIPT_TAG_PATTERN.sub("", content)
    text = HTML_TAG_PATTERN.sub("", text)
    return WHITESPACE_PATTERN.sub(" ", text).strip()
