"""Utilities for loading assessments from a human-friendly text file.

File format: an optional header followed by question blocks separated by
blank lines or '---'.

    TITLE: Week 3 reflection
    DUE: 2026-11-01T12:00:00+00:00   (optional, ISO-8601; naive means UTC)
    TIMELIMIT: 30                    (optional, minutes)

    Q: Question text (supports markdown + LaTeX). Additional lines until the
       next marker are treated as part of the question.
    POINTS: 5                        (optional, defaults to 1)

The assessment id is the file stem; question ids are ``q1``, ``q2``, ... in
file order.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from pathlib import Path

from attempt_app.constants.attempt_constants import (
    ASSESSMENT_FILE_SUFFIX,
    DEFAULT_QUESTION_POINTS,
)
from attempt_app.core.models import Assessment, Question
from attempt_app.utils.time_utils import ensure_utc

logger = logging.getLogger(__name__)


class AssessmentImportError(Exception):
    """Raised when an assessment definition cannot be parsed."""


@dataclass(slots=True)
class _Header:
    title: str | None = None
    due_at: datetime | None = None
    time_limit_minutes: int | None = None


_HEADER_KEYS = ("TITLE:", "DUE:", "TIMELIMIT:")


def load_assessment_from_file(file_path: Path) -> Assessment:
    text = file_path.read_text(encoding="utf-8")
    return parse_assessment_text(file_path.stem, text)


def load_assessments_from_directory(directory: Path) -> list[Assessment]:
    """Load every assessment file in ``directory``, sorted by file name."""
    if not directory.is_dir():
        raise AssessmentImportError(f"Assessment directory {directory} does not exist.")
    assessments = [
        load_assessment_from_file(path)
        for path in sorted(directory.glob(f"*{ASSESSMENT_FILE_SUFFIX}"))
    ]
    logger.info("Loaded %d assessment(s) from %s", len(assessments), directory)
    return assessments


def parse_assessment_text(assessment_id: str, text: str) -> Assessment:
    header = _Header()
    blocks: list[list[str]] = []
    current_block: list[str] = []
    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        if stripped == "---" or not stripped:
            if current_block:
                blocks.append(current_block)
                current_block = []
            continue
        if not blocks and not current_block and stripped.upper().startswith(_HEADER_KEYS):
            _parse_header_line(header, stripped)
            continue
        current_block.append(raw_line)
    if current_block:
        blocks.append(current_block)

    if not header.title:
        raise AssessmentImportError("Assessment file must start with a TITLE line.")
    if not blocks:
        raise AssessmentImportError("Assessment file did not contain any questions.")

    questions = tuple(_parse_block(lines, index) for index, lines in enumerate(blocks))
    return Assessment(
        id=assessment_id,
        title=header.title,
        questions=questions,
        due_at=header.due_at,
        time_limit_minutes=header.time_limit_minutes,
    )


def _parse_header_line(header: _Header, line: str) -> None:
    key, raw_value = line.split(":", 1)
    value = raw_value.strip()
    key = key.strip().upper()
    if key == "TITLE":
        if not value:
            raise AssessmentImportError("TITLE must not be empty.")
        header.title = value
    elif key == "DUE":
        try:
            header.due_at = ensure_utc(datetime.fromisoformat(value))
        except ValueError as exc:
            raise AssessmentImportError("DUE must be an ISO-8601 timestamp.") from exc
    elif key == "TIMELIMIT":
        header.time_limit_minutes = _parse_positive_int(value, "TIMELIMIT", allow_zero=False)


def _parse_block(lines: list[str], index: int) -> Question:
    prompt_lines: list[str] = []
    points = DEFAULT_QUESTION_POINTS
    in_prompt = False

    for raw_line in lines:
        line = raw_line.strip()
        upper = line.upper()
        if upper.startswith("Q:"):
            prompt_lines = [line[2:].strip()]
            in_prompt = True
            continue
        if upper.startswith("POINTS:"):
            points = _parse_positive_int(line.split(":", 1)[1].strip(), "POINTS", allow_zero=True)
            in_prompt = False
            continue
        if in_prompt:
            prompt_lines.append(line)
        else:
            raise AssessmentImportError(
                f"Encountered text outside of a known section: '{line}'."
            )

    prompt = "\n".join(prompt_lines).strip()
    if not prompt:
        raise AssessmentImportError("Question text missing (Q: ...)")

    return Question(
        id=f"q{index + 1}",
        prompt=prompt,
        points=points,
        order_index=index,
    )


def _parse_positive_int(raw_value: str, label: str, *, allow_zero: bool) -> int:
    if not raw_value:
        raise AssessmentImportError(f"{label} must include an integer value.")
    try:
        parsed = int(raw_value)
    except ValueError as exc:
        raise AssessmentImportError(f"{label} must be an integer.") from exc
    if parsed < 0 or (parsed == 0 and not allow_zero):
        qualifier = "non-negative" if allow_zero else "positive"
        raise AssessmentImportError(f"{label} must be a {qualifier} integer.")
    return parsed
