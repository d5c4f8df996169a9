"""Summa Theologica question extractor package."""
from __future__ import annotations

from pathlib import Path

from . import loader, markers, normalize, parser, parts

__all__ = [
    "loader",
    "markers",
    "normalize",
    "parser",
    "parts",
    "load_question",
]


def load_question(source_root: Path, part_id: str, question: int) -> parser.Question | None:
    """Convenience wrapper: parse one question with a throwaway loader."""
    return loader.QuestionLoader(source_root).load_question(part_id, question)
