"""Text sanitization and slug helpers."""

import re
import time


SCRIPT_BLOCK_PATTERN = re.compile(
    r"<\s*script\b[^>]*>([\s\S]*?)<\s*/\s*script\s*>", re.IGNORECASE
)
ANGLE_BRACKETS_PATTERN = re.compile(r"[<>]")
WHITESPACE_PATTERN = re.compile(r"\s+")

MAX_SLUG_LENGTH = 200


def sanitize_text(text: str) -> str:
    """Strip script blocks and angle brackets, collapse whitespace.

    Script removal is repeated until the text stops changing so that nested
    payloads like `<scr<script></script>ipt>` cannot reassemble a tag.

    Examples:
        >>> sanitize_text("  hello   <b>world</b> ")
        'hello bworld/b'
        >>> sanitize_text("<script>alert(1)</script>ok")
        'ok'
    """
    previous = None
    while previous != text:
        previous = text
        text = SCRIPT_BLOCK_PATTERN.sub("", text)

    text = ANGLE_BRACKETS_PATTERN.sub("", text)
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def generate_slug(value: str, fallback_prefix: str = "post") -> str:
    """Build a URL-friendly slug.

    Lowercases, turns whitespace into hyphens, drops anything outside
    `[a-z0-9-]`, collapses hyphen runs and trims them from both ends. An empty
    result falls back to `<prefix>-<millis>`.
    """
    slug = WHITESPACE_PATTERN.sub("-", value.lower().strip())
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    slug = re.sub(r"-+", "-", slug).strip("-")

    if not slug:
        return f"{fallback_prefix}-{int(time.time() * 1000)}"

    if len(slug) > MAX_SLUG_LENGTH:
        slug = slug[:MAX_SLUG_LENGTH].rstrip("-")

    return slug
