#!/usr/bin/env python3
"""CLI entrypoint for the Summa question extractor."""
from __future__ import annotations

import argparse
import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from thomas.summa import parts
from thomas.summa.loader import QuestionLoader
from thomas.summa.parser import Question

DEFAULT_INDEX = Path("_index") / "summa"

logger = logging.getLogger("thomas.summa.cli")


class ExtractorPaths:
    def __init__(self, source_root: Path, index_dir: Path | None = None) -> None:
        self.source_root = source_root
        self.index_dir = (index_dir or Path.cwd() / DEFAULT_INDEX).resolve()
        self.questions_path = self.index_dir / "questions.jsonl"
        self.scan_report_path = self.index_dir / "scan_report.json"


@dataclass
class QuestionScanResult:
    """Per-file figures captured while scanning a part."""

    file: str
    part: str
    question: int
    title: str
    article_count: int
    recovered_count: int
    untitled_count: int

    def to_dict(self) -> dict[str, object]:
        return {
            "file": self.file,
            "part": self.part,
            "question": self.question,
            "title": self.title,
            "article_count": self.article_count,
            "recovered_count": self.recovered_count,
            "untitled_count": self.untitled_count,
        }


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )


def now_iso() -> str:
    return datetime.now(UTC).replace(microsecond=0).isoformat()


def resolve_root(path: str | None) -> Path:
    root = parts.resolve_source_root(path)
    if not root.exists():
        raise SystemExit(f"Source directory not found: {root}")
    return root


def resolve_part_ids(value: str | None) -> list[str]:
    if not value:
        return list(parts.SUMMA_PARTS)
    if value not in parts.SUMMA_PARTS:
        known = ", ".join(parts.SUMMA_PARTS)
        raise SystemExit(f"Unknown part {value!r}. Known parts: {known}")
    return [value]


def summarize_question(loader: QuestionLoader, question: Question) -> QuestionScanResult:
    path = parts.question_file_path(loader.source_root, question.part_id, question.question_number)
    return QuestionScanResult(
        file=str(path.relative_to(loader.source_root).as_posix()),
        part=question.part_id,
        question=question.question_number,
        title=question.title,
        article_count=len(question.articles),
        recovered_count=sum(1 for article in question.articles if article.recovered),
        untitled_count=sum(1 for article in question.articles if not article.title),
    )


def scan_parts(
    loader: QuestionLoader, part_ids: Iterable[str]
) -> tuple[list[Question], dict[str, QuestionScanResult]]:
    questions: list[Question] = []
    files: dict[str, QuestionScanResult] = {}
    for part_id in part_ids:
        for question in loader.iter_part(part_id):
            result = summarize_question(loader, question)
            questions.append(question)
            files[result.file] = result
    return questions, files


def command_parse(args: argparse.Namespace) -> None:
    loader = QuestionLoader(resolve_root(args.root))
    part_id = resolve_part_ids(args.part)[0]
    question = loader.load_question(part_id, args.question)
    if question is None:
        raise SystemExit(f"Question not found: {part_id} Q{args.question}")
    print(json.dumps(question.to_dict(), ensure_ascii=False, indent=2))


def command_scan(args: argparse.Namespace) -> None:
    paths = ExtractorPaths(resolve_root(args.root), resolve_index(args.output))
    loader = QuestionLoader(paths.source_root)
    logger.info("Scanning %s", paths.source_root)
    questions, files = scan_parts(loader, resolve_part_ids(args.part))
    timestamp = now_iso()
    write_jsonl(paths.questions_path, [question.to_dict() for question in questions])
    write_scan_report(paths, files, timestamp)
    logger.info(
        "Parsed %d questions with %d articles",
        len(questions),
        sum(result.article_count for result in files.values()),
    )


def command_check(args: argparse.Namespace) -> None:
    loader = QuestionLoader(resolve_root(args.root))
    _, files = scan_parts(loader, resolve_part_ids(args.part))
    print_status_table(files.values())


def resolve_index(value: str | None) -> Path | None:
    if not value:
        return None
    return Path(value).expanduser()


def write_jsonl(path: Path, items: Iterable[dict[str, Any]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        for item in items:
            fh.write(json.dumps(item, ensure_ascii=False))
            fh.write("\n")


def write_scan_report(
    paths: ExtractorPaths, files: dict[str, QuestionScanResult], timestamp: str
) -> None:
    report = {
        "timestamp": timestamp,
        "source_root": str(paths.source_root),
        "files": {file: data.to_dict() for file, data in files.items()},
        "counts": {
            "files": len(files),
            "articles": sum(result.article_count for result in files.values()),
            "recovered": sum(result.recovered_count for result in files.values()),
            "untitled": sum(result.untitled_count for result in files.values()),
            "empty": sum(1 for result in files.values() if result.article_count == 0),
        },
    }
    paths.scan_report_path.parent.mkdir(parents=True, exist_ok=True)
    with paths.scan_report_path.open("w", encoding="utf-8") as fh:
        json.dump(report, fh, indent=2, ensure_ascii=False)


def print_status_table(results: Iterable[QuestionScanResult]) -> None:
    print("File".ljust(24), "Articles".ljust(10), "Recovered".ljust(10), "Title")
    print("-" * 80)
    empty = 0
    for result in sorted(results, key=lambda item: item.file):
        marker = "" if result.article_count else "  (no articles)"
        if not result.article_count:
            empty += 1
        print(
            result.file.ljust(24),
            str(result.article_count).ljust(10),
            str(result.recovered_count).ljust(10),
            result.title + marker,
        )
    print(f"\nQuestions without articles: {empty}")


def build_parser() -> argparse.ArgumentParser:
    parser_obj = argparse.ArgumentParser(description="Extract Summa question files")
    parser_obj.add_argument(
        "--root",
        help=f"Directory holding the part folders (overrides {parts.SOURCE_ROOT_ENV})",
    )
    parser_obj.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser_obj.add_subparsers(dest="command")

    parse_parser = subparsers.add_parser("parse", help="Print one question as JSON")
    parse_parser.add_argument("part", help="Part identifier, e.g. FP")
    parse_parser.add_argument("question", type=int, help="Question number")
    parse_parser.set_defaults(func=command_parse)

    scan_parser = subparsers.add_parser("scan", help="Parse every available question")
    scan_parser.add_argument("--part", help="Restrict the scan to one part")
    scan_parser.add_argument("--output", help="Index directory for questions.jsonl and report")
    scan_parser.set_defaults(func=command_scan)

    check_parser = subparsers.add_parser("check", help="Print article counts per question")
    check_parser.add_argument("--part", help="Restrict the check to one part")
    check_parser.set_defaults(func=command_check)

    return parser_obj


def main(argv: list[str] | None = None) -> None:
    parser_obj = build_parser()
    args = parser_obj.parse_args(argv)
    if not getattr(args, "command", None):
        parser_obj.print_help()
        return
    configure_logging(args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()
