"""Question loading, memoization and batch listings."""
from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import asdict, dataclass
from pathlib import Path

from .parser import Article, Question, parse_question_file
from .parts import (
    SUMMA_PARTS,
    question_file_path,
    require_positive,
    resolve_source_root,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuestionSummary:
    number: int
    title: str
    article_count: int

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


class QuestionLoader:
    """Resolve, parse and memoize question files under ``source_root``.

    One loader is meant to live for one build. Parsing is deterministic, so
    two threads racing on the same key store equal Questions and the first
    insert wins.
    """

    def __init__(self, source_root: str | Path | None = None) -> None:
        self.source_root = resolve_source_root(source_root)
        self._cache: dict[tuple[str, int], Question] = {}

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: object) -> bool:
        return key in self._cache

    def clear(self) -> None:
        self._cache.clear()

    def source_path(self, part_id: str, question: int) -> Path | None:
        require_positive(question, "question")
        part = SUMMA_PARTS.get(part_id)
        if part is None or question > part.question_count:
            return None
        path = question_file_path(self.source_root, part_id, question)
        return path if path.is_file() else None

    def load_question(self, part_id: str, question: int) -> Question | None:
        """Return the parsed question, or ``None`` when no source file exists."""
        require_positive(question, "question")
        key = (part_id, question)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        path = self.source_path(part_id, question)
        if path is None:
            logger.debug("No source file for %s Q%d under %s", part_id, question, self.source_root)
            return None
        logger.debug("Parsing %s", path)
        html = path.read_text(encoding="utf-8", errors="ignore")
        parsed = parse_question_file(html, part_id, question)
        return self._cache.setdefault(key, parsed)

    def get_article(self, part_id: str, question: int, article: int) -> Article | None:
        require_positive(article, "article")
        parsed = self.load_question(part_id, question)
        if parsed is None:
            return None
        return parsed.get_article(article)

    def available_questions(self, part_id: str) -> list[int]:
        part = SUMMA_PARTS.get(part_id)
        if part is None:
            return []
        return [
            number
            for number in range(1, part.question_count + 1)
            if question_file_path(self.source_root, part_id, number).is_file()
        ]

    def iter_part(self, part_id: str) -> Iterator[Question]:
        for number in self.available_questions(part_id):
            parsed = self.load_question(part_id, number)
            if parsed is not None:
                yield parsed

    def load_part(self, part_id: str) -> list[Question]:
        return list(self.iter_part(part_id))

    def article_keys(self, part_id: str, question: int) -> list[tuple[int, int]]:
        parsed = self.load_question(part_id, question)
        if parsed is None:
            return []
        return [(question, number) for number in parsed.article_numbers()]

    def question_summaries(self, part_id: str) -> list[QuestionSummary]:
        return [
            QuestionSummary(
                number=parsed.question_number,
                title=parsed.title,
                article_count=len(parsed.articles),
            )
            for parsed in self.iter_part(part_id)
        ]

    def question_paths(self) -> list[dict[str, str]]:
        paths: list[dict[str, str]] = []
        for part_id in SUMMA_PARTS:
            for number in self.available_questions(part_id):
                paths.append({"part": part_id, "question": str(number)})
        return paths

    def article_paths(self) -> list[dict[str, str]]:
        paths: list[dict[str, str]] = []
        for part_id in SUMMA_PARTS:
            for parsed in self.iter_part(part_id):
                for question, article in self.article_keys(part_id, parsed.question_number):
                    paths.append(
                        {"part": part_id, "question": str(question), "article": str(article)}
                    )
        return paths
