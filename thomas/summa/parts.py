"""Static part table, naming conventions and URL builders."""
from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from pathlib import Path

SOURCE_ROOT_ENV = "SUMMA_SOURCE_ROOT"
DEFAULT_SOURCE_ROOT = Path("public") / "thomas" / "summa"
URL_PREFIX = "/thomas/summa"


@dataclass(frozen=True)
class Part:
    id: str
    name: str
    latin_name: str
    question_count: int

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


SUMMA_PARTS: dict[str, Part] = {
    "FP": Part("FP", "First Part", "Prima Pars", 119),
    "FS": Part("FS", "First Part of the Second Part", "Prima Secundae", 114),
    "SS": Part("SS", "Second Part of the Second Part", "Secunda Secundae", 189),
    "TP": Part("TP", "Third Part", "Tertia Pars", 90),
    "XP": Part("XP", "Supplement", "Supplementum", 99),
}


def list_parts() -> list[Part]:
    return list(SUMMA_PARTS.values())


def get_part(part_id: str) -> Part:
    try:
        return SUMMA_PARTS[part_id]
    except KeyError:
        raise ValueError(f"unknown part: {part_id!r}") from None


def require_positive(value: int, label: str) -> int:
    # bool is an int subclass; True is not a question number.
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"{label} must be a positive integer, got {value!r}")
    return value


def resolve_source_root(value: str | Path | None = None) -> Path:
    """Pick the directory holding the ``FP/``, ``FS/`` ... folders."""
    if value:
        return Path(value).expanduser().resolve()
    env_value = os.environ.get(SOURCE_ROOT_ENV)
    if env_value:
        return Path(env_value).expanduser().resolve()
    return (Path.cwd() / DEFAULT_SOURCE_ROOT).resolve()


def question_file_name(part_id: str, question: int) -> str:
    get_part(part_id)
    require_positive(question, "question")
    return f"{part_id}{question:03d}.html"


def question_file_path(source_root: Path, part_id: str, question: int) -> Path:
    return source_root / part_id / question_file_name(part_id, question)


def question_url(part_id: str, question: int) -> str:
    get_part(part_id)
    require_positive(question, "question")
    return f"{URL_PREFIX}/{part_id}/Q{question}"


def article_url(part_id: str, question: int, article: int) -> str:
    require_positive(article, "article")
    return f"{question_url(part_id, question)}/A{article}"
