"""Text normalization helpers."""
from __future__ import annotations

import re

BREAK_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
PARAGRAPH_OPEN_RE = re.compile(r"<p[^>]*>", re.IGNORECASE)
PARAGRAPH_CLOSE_RE = re.compile(r"</p>", re.IGNORECASE)
TAG_RE = re.compile(r"<[^>]+>")
BLANK_RUN_RE = re.compile(r"\n\s*\n\s*\n")
HORIZONTAL_SPACE_RE = re.compile(r"[ \t]+")

# Order matters: &amp; is decoded after the typographic entities so that
# "&amp;mdash;" stays literal text.
ENTITIES: tuple[tuple[str, str], ...] = (
    ("&nbsp;", " "),
    ("&mdash;", "—"),
    ("&ndash;", "–"),
    ("&ldquo;", "“"),
    ("&rdquo;", "”"),
    ("&lsquo;", "‘"),
    ("&rsquo;", "’"),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&#8212;", "—"),
    ("&#8217;", "’"),
    ("&#8220;", "“"),
    ("&#8221;", "”"),
)


def strip_tags(fragment: str) -> str:
    text = BREAK_RE.sub("\n", fragment)
    text = PARAGRAPH_OPEN_RE.sub("\n\n", text)
    text = PARAGRAPH_CLOSE_RE.sub("", text)
    return TAG_RE.sub("", text)


def decode_entities(text: str) -> str:
    for entity, value in ENTITIES:
        text = text.replace(entity, value)
    return text


def collapse_whitespace(text: str) -> str:
    text = BLANK_RUN_RE.sub("\n\n", text)
    text = HORIZONTAL_SPACE_RE.sub(" ", text)
    return text.strip()


def clean_text(fragment: str) -> str:
    """Turn a (possibly malformed) markup fragment into plain prose.

    Line breaks become newlines, paragraph openers a blank line, every other
    tag is dropped while its text is kept. Only the entities in ``ENTITIES``
    are decoded; anything else is left untouched.
    """
    if not fragment:
        return ""
    return collapse_whitespace(decode_entities(strip_tags(fragment)))
