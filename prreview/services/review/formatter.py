"""Formatting of review text into a GitHub comment body."""

import re

COMMENT_HEADER = "# Claude Code Review"

ESCAPE = "\\"

# A single-backtick span bounded by whitespace or the start/end of the text
INLINE_CODE_PATTERN = re.compile(r"(?<!\S)`([^`]+)`(?!\S)")
CODE_FENCE = "```"
INTERPOLATION_MARKER = "${"


def escape_inline_code(text: str) -> str:
    return INLINE_CODE_PATTERN.sub(lambda m: f"{ESCAPE}`{m.group(1)}{ESCAPE}`", text)


def escape_code_fences(text: str) -> str:
    return text.replace(CODE_FENCE, f"{ESCAPE}`" * 3)


def escape_interpolation(text: str) -> str:
    return text.replace(INTERPOLATION_MARKER, ESCAPE + INTERPOLATION_MARKER)


def sanitize_review(text: str) -> str:
    """
    Escape review text before it is posted.

    The steps must run in this order: inline spans first, then fences, then
    interpolation markers. Later steps would otherwise match the escapes
    added by earlier ones.
    """
    text = escape_inline_code(text)
    text = escape_code_fences(text)
    return escape_interpolation(text)


def format_comment_body(review: str) -> str:
    """Header line plus the sanitized review."""
    return f"{COMMENT_HEADER}\n\n{sanitize_review(review)}"
