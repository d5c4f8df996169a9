from __future__ import annotations

import json
import shutil
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from thomas.scripts import summa_cli
from thomas.summa import load_question, parts
from thomas.summa.loader import QuestionLoader, QuestionSummary

SAMPLE_DIR = Path(__file__).resolve().parent / "samples"


@pytest.fixture()
def sandbox(tmp_path: Path) -> Path:
    root = tmp_path / "public" / "thomas" / "summa"
    target = root / "FP"
    target.mkdir(parents=True)
    for sample_file in SAMPLE_DIR.glob("*.html"):
        shutil.copy(sample_file, target / sample_file.name)
    (root / "TP").mkdir()
    (root / "TP" / "TP071.html").write_text(
        "<h3>OF THE VISION (TWO ARTICLES)<br></h3>"
        "<!--Aquin.: SMT TP Q[71] A[1] Body--><table><tr><td>Respondeo<td>I answer that</table>",
        encoding="utf-8",
    )
    return root


def test_load_question_parses_and_memoizes(sandbox: Path) -> None:
    loader = QuestionLoader(sandbox)
    first = loader.load_question("FP", 2)
    assert first is not None
    assert first.article_numbers() == [1, 2, 3]
    assert ("FP", 2) in loader
    assert loader.load_question("FP", 2) is first
    assert len(loader) == 1


def test_missing_question_is_none_and_not_cached(sandbox: Path) -> None:
    loader = QuestionLoader(sandbox)
    assert loader.load_question("FP", 999) is None
    assert loader.load_question("FP", 5) is None
    assert loader.load_question("ZZ", 2) is None
    assert len(loader) == 0


def test_load_question_rejects_bad_numbers(sandbox: Path) -> None:
    loader = QuestionLoader(sandbox)
    with pytest.raises(ValueError):
        loader.load_question("FP", 0)
    with pytest.raises(ValueError):
        loader.get_article("FP", 2, -1)


def test_fresh_loaders_do_not_share_cache(sandbox: Path) -> None:
    first = QuestionLoader(sandbox)
    second = QuestionLoader(sandbox)
    first.load_question("FP", 2)
    assert len(second) == 0
    first.clear()
    assert len(first) == 0


def test_concurrent_loads_agree(sandbox: Path) -> None:
    loader = QuestionLoader(sandbox)
    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda _: loader.load_question("FP", 2), range(8)))
    assert all(result == results[0] for result in results)
    assert len(loader) == 1


def test_source_root_from_environment(sandbox: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(parts.SOURCE_ROOT_ENV, str(sandbox))
    loader = QuestionLoader()
    assert loader.source_root == sandbox.resolve()
    assert loader.load_question("FP", 2) is not None


def test_batch_listings(sandbox: Path) -> None:
    loader = QuestionLoader(sandbox)
    assert loader.available_questions("FP") == [2]
    assert loader.available_questions("XP") == []
    assert loader.available_questions("ZZ") == []
    assert loader.article_keys("FP", 2) == [(2, 1), (2, 2), (2, 3)]
    assert loader.article_keys("FP", 3) == []
    assert [question.question_number for question in loader.load_part("TP")] == [71]
    assert loader.question_summaries("FP") == [
        QuestionSummary(number=2, title="THE EXISTENCE OF GOD (THREE ARTICLES)", article_count=3)
    ]
    assert loader.question_paths() == [
        {"part": "FP", "question": "2"},
        {"part": "TP", "question": "71"},
    ]
    assert {"part": "TP", "question": "71", "article": "1"} in loader.article_paths()
    assert len(loader.article_paths()) == 4


def test_get_article(sandbox: Path) -> None:
    loader = QuestionLoader(sandbox)
    recovered = loader.get_article("TP", 71, 1)
    assert recovered is not None
    assert recovered.title == "Article 1"
    assert recovered.respondeo.latin == "Respondeo"
    assert loader.get_article("FP", 2, 9) is None
    assert loader.get_article("FP", 4, 1) is None


def test_package_wrapper(sandbox: Path) -> None:
    question = load_question(sandbox, "FP", 2)
    assert question is not None
    assert question.title == "THE EXISTENCE OF GOD (THREE ARTICLES)"


def test_part_table_and_paths() -> None:
    assert [part.id for part in parts.list_parts()] == ["FP", "FS", "SS", "TP", "XP"]
    assert parts.get_part("XP").question_count == 99
    assert parts.get_part("SS").latin_name == "Secunda Secundae"
    assert parts.question_file_name("FP", 2) == "FP002.html"
    assert parts.question_file_name("SS", 189) == "SS189.html"
    assert parts.question_url("FS", 12) == "/thomas/summa/FS/Q12"
    assert parts.article_url("TP", 3, 4) == "/thomas/summa/TP/Q3/A4"
    with pytest.raises(ValueError):
        parts.get_part("ZZ")
    with pytest.raises(ValueError):
        parts.question_url("FP", 0)
    with pytest.raises(ValueError):
        parts.article_url("FP", 1, True)


def test_cli_scan_writes_report(sandbox: Path, tmp_path: Path) -> None:
    index_dir = tmp_path / "index"
    summa_cli.main(["--root", str(sandbox), "scan", "--output", str(index_dir)])
    report = json.loads((index_dir / "scan_report.json").read_text(encoding="utf-8"))
    assert report["counts"] == {
        "files": 2,
        "articles": 4,
        "recovered": 2,
        "untitled": 0,
        "empty": 0,
    }
    entry = report["files"]["FP/FP002.html"]
    assert entry["article_count"] == 3
    assert entry["recovered_count"] == 1
    lines = (index_dir / "questions.jsonl").read_text(encoding="utf-8").splitlines()
    rows = [json.loads(line) for line in lines]
    assert [(row["part_id"], row["question_number"]) for row in rows] == [("FP", 2), ("TP", 71)]


def test_cli_parse_prints_json(sandbox: Path, capsys: pytest.CaptureFixture[str]) -> None:
    summa_cli.main(["--root", str(sandbox), "parse", "FP", "2"])
    payload = json.loads(capsys.readouterr().out)
    assert payload["title"] == "THE EXISTENCE OF GOD (THREE ARTICLES)"
    assert len(payload["articles"]) == 3


def test_cli_parse_missing_question_exits(sandbox: Path) -> None:
    with pytest.raises(SystemExit):
        summa_cli.main(["--root", str(sandbox), "parse", "FP", "999"])
    with pytest.raises(SystemExit):
        summa_cli.main(["--root", str(sandbox), "parse", "ZZ", "1"])


def test_cli_check_prints_table(sandbox: Path, capsys: pytest.CaptureFixture[str]) -> None:
    summa_cli.main(["--root", str(sandbox), "check", "--part", "FP"])
    out = capsys.readouterr().out
    assert "FP/FP002.html" in out
    assert "Questions without articles: 0" in out
