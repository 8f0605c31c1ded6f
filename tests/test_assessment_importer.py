from datetime import datetime, timezone
from pathlib import Path

import pytest

from attempt_app.core.assessment_importer import (
    AssessmentImportError,
    load_assessment_from_file,
    load_assessments_from_directory,
    parse_assessment_text,
)
from attempt_app.core.services.assessment_catalog import InMemoryAssessmentCatalog

SAMPLE = """TITLE: Thermodynamics check
DUE: 2026-11-01T12:00:00
TIMELIMIT: 20

Q: What is entropy?
Answer in two sentences.
POINTS: 5

---

Q: Name the second law.
"""


def test_parse_header_and_questions():
    assessment = parse_assessment_text("thermo", SAMPLE)

    assert assessment.id == "thermo"
    assert assessment.title == "Thermodynamics check"
    assert assessment.due_at == datetime(2026, 11, 1, 12, 0, tzinfo=timezone.utc)
    assert assessment.time_limit_minutes == 20
    assert [q.id for q in assessment.questions] == ["q1", "q2"]
    assert assessment.questions[0].prompt == "What is entropy?\nAnswer in two sentences."
    assert assessment.questions[0].points == 5
    assert assessment.questions[1].points == 1
    assert [q.order_index for q in assessment.questions] == [0, 1]


def test_missing_title_is_rejected():
    with pytest.raises(AssessmentImportError):
        parse_assessment_text("x", "Q: Lonely question\n")


def test_missing_questions_are_rejected():
    with pytest.raises(AssessmentImportError):
        parse_assessment_text("x", "TITLE: Empty\n")


@pytest.mark.parametrize(
    "header",
    ["TIMELIMIT: 0", "TIMELIMIT: soon", "DUE: tomorrow"],
)
def test_invalid_header_values_are_rejected(header):
    with pytest.raises(AssessmentImportError):
        parse_assessment_text("x", f"TITLE: Bad\n{header}\n\nQ: Something?\n")


def test_stray_text_is_rejected():
    with pytest.raises(AssessmentImportError):
        parse_assessment_text("x", "TITLE: Bad\n\nPOINTS: 2\nstray line\n")


def test_load_directory_into_catalog(tmp_path: Path):
    (tmp_path / "b-quiz.txt").write_text("TITLE: B\n\nQ: Second?\n", encoding="utf-8")
    (tmp_path / "a-quiz.txt").write_text(SAMPLE, encoding="utf-8")
    (tmp_path / "notes.md").write_text("ignored", encoding="utf-8")

    assessments = load_assessments_from_directory(tmp_path)
    catalog = InMemoryAssessmentCatalog(assessments)

    assert [a.id for a in assessments] == ["a-quiz", "b-quiz"]
    assert catalog.get_assessment("b-quiz").title == "B"


def test_load_single_file_uses_stem_as_id(tmp_path: Path):
    path = tmp_path / "week1.txt"
    path.write_text(SAMPLE, encoding="utf-8")

    assert load_assessment_from_file(path).id == "week1"


def test_missing_directory_is_reported(tmp_path: Path):
    with pytest.raises(AssessmentImportError):
        load_assessments_from_directory(tmp_path / "absent")


def test_bundled_sample_assessment_loads():
    sample_dir = Path(__file__).resolve().parents[1] / "assessments"

    assessments = load_assessments_from_directory(sample_dir)

    assert assessments
    assert all(a.questions for a in assessments)
