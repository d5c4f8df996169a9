"""Structural marker scanning and span segmentation.

The legacy question files carry no reliable closing tags. The only structure
that can be trusted is a set of HTML comments such as
``<!--Aquin.: SMT FP Q[2] A[1] Obj. 3-->`` that tag the role of the text that
follows them. This module turns those comments into a flat list of events and
derives the span owned by each one from whatever marker comes next.
"""
from __future__ import annotations

import logging
import re
from bisect import bisect_left
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import StrEnum

MARKER_RE = re.compile(r"<!--Aquin([^>]*)-->", re.IGNORECASE)
MARKER_START_RE = re.compile(r"<!--Aquin", re.IGNORECASE)
TRAILING_BOUNDARY_RE = re.compile(r'<hr\s*>\s*<A Name="top"', re.IGNORECASE)
SEPARATOR_RE = re.compile(r"<hr", re.IGNORECASE)

logger = logging.getLogger(__name__)


class Role(StrEnum):
    PROLOGUE = "prologue"
    THESIS = "thesis"
    OBJECTION = "objection"
    SED_CONTRA = "sed_contra"
    RESPONDEO = "respondeo"
    REPLY = "reply"
    OTHER = "other"


# Checked in order against the comment body; the first hit decides the role.
ROLE_PATTERNS: tuple[tuple[Role, re.Pattern[str]], ...] = (
    (Role.THESIS, re.compile(r"A\[(\d{1,6})\]\s*Thes\.", re.IGNORECASE)),
    (Role.OBJECTION, re.compile(r"A\[(\d{1,6})\]\s*Obj\.\s*(\d{1,6})(?!\d)", re.IGNORECASE)),
    (Role.REPLY, re.compile(r"A\[(\d{1,6})\]\s*R\.O\.\s*(\d{1,6})(?!\d)", re.IGNORECASE)),
    (Role.SED_CONTRA, re.compile(r"A\[(\d{1,6})\]\s*OTC", re.IGNORECASE)),
    (Role.RESPONDEO, re.compile(r"A\[(\d{1,6})\]\s*Body", re.IGNORECASE)),
    (Role.PROLOGUE, re.compile(r"Out\.", re.IGNORECASE)),
)

# Roles whose markers alone are enough to prove an article exists.
ARTICLE_EVIDENCE_ROLES = frozenset({Role.OBJECTION, Role.SED_CONTRA, Role.RESPONDEO})


@dataclass(frozen=True)
class MarkerEvent:
    """One structural annotation found in a document."""

    role: Role
    start: int
    end: int
    article: int | None = None
    number: int | None = None
    label: str = ""


def classify_marker(body: str) -> tuple[Role, int | None, int | None]:
    for role, pattern in ROLE_PATTERNS:
        match = pattern.search(body)
        if not match:
            continue
        groups = [int(value) for value in match.groups()]
        article = groups[0] if groups else None
        number = groups[1] if len(groups) > 1 else None
        return role, article, number
    return Role.OTHER, None, None


def scan_markers(html: str) -> list[MarkerEvent]:
    """Return every ``Aquin`` marker of ``html`` in document order."""
    events: list[MarkerEvent] = []
    for match in MARKER_RE.finditer(html):
        role, article, number = classify_marker(match.group(1))
        event = MarkerEvent(
            role=role,
            start=match.start(),
            end=match.end(),
            article=article,
            number=number,
            label=match.group(1).strip(),
        )
        if role is Role.OTHER:
            logger.debug("Unclassified marker at offset %d: %r", event.start, event.label)
        events.append(event)
    return events


@dataclass
class SegmentedDocument:
    """A document paired with its marker events and span boundaries.

    Spans are heuristic: a marker owns the text up to the next marker of equal
    or greater weight, so a missing marker widens its neighbour's span.
    """

    html: str
    events: list[MarkerEvent]
    boundaries: list[int] = field(default_factory=list)
    thesis_starts: list[int] = field(default_factory=list)

    @classmethod
    def from_html(cls, html: str) -> SegmentedDocument:
        events = scan_markers(html)
        return cls(
            html=html,
            events=events,
            boundaries=[match.start() for match in MARKER_START_RE.finditer(html)],
            thesis_starts=[event.start for event in events if event.role is Role.THESIS],
        )

    def next_marker(self, position: int) -> int:
        index = bisect_left(self.boundaries, position)
        if index < len(self.boundaries):
            return self.boundaries[index]
        return len(self.html)

    def next_thesis(self, position: int) -> int:
        index = bisect_left(self.thesis_starts, position)
        if index < len(self.thesis_starts):
            return self.thesis_starts[index]
        return len(self.html)

    def span_after(self, event: MarkerEvent) -> str:
        """Text owned by a minor marker: up to the next marker of any kind."""
        return self.html[event.end : self.next_marker(event.end)]

    def thesis_span(self, event: MarkerEvent) -> str:
        """Text owned by a thesis marker: the whole article."""
        stop = self.next_thesis(event.end)
        boundary = TRAILING_BOUNDARY_RE.search(self.html, event.end, stop)
        if boundary:
            stop = boundary.start()
        return self.html[event.end : stop]

    def prologue_span(self) -> str | None:
        event = next(self.iter_role(Role.PROLOGUE), None)
        if event is None:
            return None
        stop = self.next_marker(event.end)
        separator = SEPARATOR_RE.search(self.html, event.end, stop)
        if separator:
            stop = separator.start()
        return self.html[event.end : stop]

    def iter_role(self, role: Role, article: int | None = None) -> Iterator[MarkerEvent]:
        for event in self.events:
            if event.role is not role:
                continue
            if article is not None and event.article != article:
                continue
            yield event

    def role_spans(self, role: Role, article: int) -> list[tuple[MarkerEvent, str]]:
        # Searched across the whole document: malformed files interleave
        # articles or put role markers ahead of the thesis marker.
        return [(event, self.span_after(event)) for event in self.iter_role(role, article)]

    def thesis_markers(self) -> list[MarkerEvent]:
        """First thesis marker of each article, in document order."""
        seen: set[int] = set()
        markers: list[MarkerEvent] = []
        for event in self.iter_role(Role.THESIS):
            assert event.article is not None
            if event.article in seen:
                continue
            seen.add(event.article)
            markers.append(event)
        return markers

    def orphan_articles(self, known: Iterable[int] | None = None) -> list[int]:
        """Article numbers referenced by role markers but lacking a thesis."""
        if known is None:
            known = (event.article for event in self.thesis_markers())
        excluded = set(known)
        orphans: list[int] = []
        for event in self.events:
            if event.role not in ARTICLE_EVIDENCE_ROLES or event.article is None:
                continue
            if event.article in excluded:
                continue
            excluded.add(event.article)
            orphans.append(event.article)
        return orphans
