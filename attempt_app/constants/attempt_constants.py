"""Attempt-related constants shared across core and server layers."""

DEFAULT_PENDING_REVIEW_LIMIT: int = 10
DEFAULT_QUESTION_POINTS: int = 1
ASSESSMENT_DIRECTORY: str = "assessments"
ASSESSMENT_FILE_SUFFIX: str = ".txt"
DEFAULT_REVIEWER_IDS: tuple[str, ...] = ("reviewer",)
