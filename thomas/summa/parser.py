"""Parsing utilities for legacy Summa question files."""
from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import asdict, dataclass

from bs4 import BeautifulSoup

from .markers import MarkerEvent, Role, SegmentedDocument
from .normalize import clean_text
from .parts import require_positive

logger = logging.getLogger(__name__)

ROW_RE = re.compile(r"<tr[^>]*>([\s\S]*?)(?:</tr>|(?=<tr)|\Z)", re.IGNORECASE)
CELL_OPEN_RE = re.compile(r"<td[^>]*>", re.IGNORECASE)
CELL_TAIL_RE = re.compile(r"</td>.*", re.IGNORECASE)
ADJACENT_CELLS_RE = re.compile(
    r"<td[^>]*>([\s\S]*?)(?:</td>)?\s*<td[^>]*>([\s\S]*?)(?:</td>|\Z)",
    re.IGNORECASE,
)
TABLE_RE = re.compile(r"<table[^>]*>([\s\S]*?)</table>", re.IGNORECASE)

TREATISE_TITLE_RE = re.compile(
    r"<h3[^>]*>.*?TREATISE[^<]*<br>\s*(?:<br>\s*)?([A-Z][^<]+)",
    re.IGNORECASE,
)
# Tag names are matched in any case; the topic line itself must be capitals.
TOPIC_HEADING_RE = re.compile(
    r"(?i:<h3[^>]*>)\s*((?:OF\s+)?[A-Z][A-Z\s,'():;]+(?:\([^)]+\))?)\s*(?i:<br)"
)
ARTICLE_COUNT_RE = re.compile(
    r"<h3[^>]*>[^<]*\(\s*(?:ONE|TWO|THREE|FOUR|FIVE|SIX|SEVEN|EIGHT|NINE|TEN|\d+)"
    r"\s*ARTICLES?\s*\)",
    re.IGNORECASE,
)
HEADING_HINT_RE = re.compile(r"<h[1-4][\s>]", re.IGNORECASE)
HEADING_TAGS = ["h1", "h2", "h3", "h4"]

# Entity openers, control characters and lone surrogates never reach lxml.
# They are parked in the Supplementary Private Use Area while the tree is
# built and put back afterwards, so heading text reaches clean_text verbatim.
_SHIELDED = [
    "&",
    *map(chr, range(0x00, 0x09)),
    "\x0b",
    "\x0c",
    *map(chr, range(0x0E, 0x20)),
    *map(chr, range(0xD800, 0xE000)),
]
SHIELD_TABLE = {ord(char): 0xF0000 + index for index, char in enumerate(_SHIELDED)}
UNSHIELD_TABLE = {value: key for key, value in SHIELD_TABLE.items()}


@dataclass(frozen=True)
class BilingualText:
    latin: str = ""
    english: str = ""

    def is_empty(self) -> bool:
        return not self.latin and not self.english


EMPTY_TEXT = BilingualText()


@dataclass(frozen=True)
class Objection:
    number: int
    text: BilingualText


@dataclass(frozen=True)
class Reply:
    number: int
    text: BilingualText


@dataclass(frozen=True)
class Article:
    """One article of a question, as recovered from its markers."""

    part_id: str
    question_number: int
    article_number: int
    title: str
    thesis: BilingualText
    objections: tuple[Objection, ...]
    sed_contra: BilingualText
    respondeo: BilingualText
    replies: tuple[Reply, ...]
    recovered: bool = False

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class Question:
    """Unit of parse: one source file, assembled once and never mutated."""

    part_id: str
    question_number: int
    title: str
    prologue: BilingualText
    articles: tuple[Article, ...]

    def to_dict(self) -> dict[str, object]:
        return asdict(self)

    def get_article(self, article_number: int) -> Article | None:
        for article in self.articles:
            if article.article_number == article_number:
                return article
        return None

    def article_numbers(self) -> list[int]:
        return [article.article_number for article in self.articles]


def _pair(latin_fragment: str, english_fragment: str) -> BilingualText | None:
    latin = clean_text(latin_fragment)
    english = clean_text(english_fragment)
    if latin and english:
        return BilingualText(latin=latin, english=english)
    return None


def split_table_row(fragment: str) -> BilingualText | None:
    """First table row, cut at the second cell opener.

    Rows are often left unclosed, so a row also ends at the next ``<tr`` or
    at the end of the fragment.
    """
    match = ROW_RE.search(fragment)
    if not match:
        return None
    cells = [part for part in CELL_OPEN_RE.split(match.group(1)) if part.strip()]
    if len(cells) < 2:
        return None
    latin = CELL_TAIL_RE.sub("", cells[0], count=1)
    english = CELL_TAIL_RE.sub("", cells[1], count=1)
    return _pair(latin, english)


def split_adjacent_cells(fragment: str) -> BilingualText | None:
    match = ADJACENT_CELLS_RE.search(fragment)
    if not match:
        return None
    return _pair(match.group(1), match.group(2))


BILINGUAL_STRATEGIES: tuple[Callable[[str], BilingualText | None], ...] = (
    split_table_row,
    split_adjacent_cells,
)


def split_bilingual(fragment: str) -> BilingualText:
    """Recover the Latin/English pair of ``fragment``.

    Strategies are tried in order; when none finds two non-empty cells the
    whole fragment is returned as English with an empty Latin side.
    """
    for strategy in BILINGUAL_STRATEGIES:
        result = strategy(fragment)
        if result is not None:
            return result
    return BilingualText(latin="", english=clean_text(fragment))


def title_after_treatise(html: str) -> str | None:
    match = TREATISE_TITLE_RE.search(html)
    return clean_text(match.group(1)) if match else None


def title_from_topic_heading(html: str) -> str | None:
    match = TOPIC_HEADING_RE.search(html)
    return clean_text(match.group(1)) if match else None


QUESTION_TITLE_STRATEGIES: tuple[Callable[[str], str | None], ...] = (
    title_after_treatise,
    title_from_topic_heading,
)


def extract_question_title(html: str, question_number: int) -> str:
    for strategy in QUESTION_TITLE_STRATEGIES:
        title = strategy(html)
        if title:
            return title
    return f"Question {question_number}"


def extract_article_title(span: str) -> str:
    """Leading text of the first heading in an article span, or ``""``.

    BeautifulSoup only locates the heading; its text is taken from the source
    markup, so entities are decoded once, by :func:`clean_text`, with the same
    closed table as every other fragment.
    """
    if not HEADING_HINT_RE.search(span):
        return ""
    soup = BeautifulSoup(span.translate(SHIELD_TABLE), "lxml")
    for heading in soup.find_all(HEADING_TAGS):
        for text in heading.stripped_strings:
            title = clean_text(text.translate(UNSHIELD_TABLE))
            if title:
                return title
    return ""


def recovered_article_title(html: str, article_number: int) -> str:
    # Only fires for files whose question heading announces an article count.
    if ARTICLE_COUNT_RE.search(html):
        return f"Article {article_number}"
    return ""


def extract_thesis(document: SegmentedDocument, event: MarkerEvent) -> BilingualText:
    # The thesis owns the text before the first role marker of its article;
    # a complete table there narrows it further.
    lead = document.span_after(event)
    table = TABLE_RE.search(lead)
    return split_bilingual(table.group(1) if table else lead)


def extract_prologue(document: SegmentedDocument) -> BilingualText:
    span = document.prologue_span()
    if span is None:
        return EMPTY_TEXT
    return split_bilingual(span)


def _first_text(document: SegmentedDocument, role: Role, article_number: int) -> BilingualText:
    spans = document.role_spans(role, article_number)
    if not spans:
        return EMPTY_TEXT
    _, span = spans[0]
    return split_bilingual(span)


def build_article(
    document: SegmentedDocument,
    part_id: str,
    question_number: int,
    article_number: int,
    *,
    title: str,
    thesis: BilingualText,
    recovered: bool = False,
) -> Article:
    objections = tuple(
        Objection(number=event.number or 0, text=split_bilingual(span))
        for event, span in document.role_spans(Role.OBJECTION, article_number)
    )
    replies = tuple(
        Reply(number=event.number or 0, text=split_bilingual(span))
        for event, span in document.role_spans(Role.REPLY, article_number)
    )
    return Article(
        part_id=part_id,
        question_number=question_number,
        article_number=article_number,
        title=title,
        thesis=thesis,
        objections=objections,
        sed_contra=_first_text(document, Role.SED_CONTRA, article_number),
        respondeo=_first_text(document, Role.RESPONDEO, article_number),
        replies=replies,
        recovered=recovered,
    )


def parse_question_file(html: str, part_id: str, question_number: int) -> Question:
    """Parse one question file into a :class:`Question`.

    Never raises for malformed input: a document without usable markers
    yields a Question with no articles and the default title.
    """
    require_positive(question_number, "question")
    document = SegmentedDocument.from_html(html)

    articles: dict[int, Article] = {}
    for event in document.thesis_markers():
        assert event.article is not None
        articles[event.article] = build_article(
            document,
            part_id,
            question_number,
            event.article,
            title=extract_article_title(document.thesis_span(event)),
            thesis=extract_thesis(document, event),
        )

    for article_number in document.orphan_articles(articles):
        logger.debug(
            "%s Q%d: article %d has no thesis marker, recovering from role markers",
            part_id,
            question_number,
            article_number,
        )
        articles[article_number] = build_article(
            document,
            part_id,
            question_number,
            article_number,
            title=recovered_article_title(html, article_number),
            thesis=EMPTY_TEXT,
            recovered=True,
        )

    return Question(
        part_id=part_id,
        question_number=question_number,
        title=extract_question_title(html, question_number),
        prologue=extract_prologue(document),
        articles=tuple(articles[number] for number in sorted(articles)),
    )
