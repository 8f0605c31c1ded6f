"""Application entry point for the attempt API."""

from __future__ import annotations

from pathlib import Path

from attempt_app.constants.attempt_constants import ASSESSMENT_DIRECTORY, DEFAULT_REVIEWER_IDS
from attempt_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from attempt_app.core.assessment_importer import load_assessments_from_directory
from attempt_app.core.attempt_manager import AttemptManager
from attempt_app.core.services.assessment_catalog import InMemoryAssessmentCatalog
from attempt_app.core.services.attempt_store import InMemoryAttemptStore
from attempt_app.core.services.authorization import StaticAuthorizer
from attempt_app.server.api_server import run_api_server
from attempt_app.utils.logging_config import configure_logging


def build_attempt_manager(assessment_dir: Path) -> AttemptManager:
    """Wire the in-memory catalog, store and authorizer into a manager."""
    catalog = InMemoryAssessmentCatalog()
    authorizer = StaticAuthorizer()
    if assessment_dir.is_dir():
        for assessment in load_assessments_from_directory(assessment_dir):
            catalog.add_assessment(assessment)
            for reviewer_id in DEFAULT_REVIEWER_IDS:
                authorizer.grant_review(reviewer_id, assessment.id)
    return AttemptManager(
        catalog=catalog,
        store=InMemoryAttemptStore(),
        authorizer=authorizer,
    )


def main() -> None:
    """Initialize logging, load assessments, and serve the API."""
    logger = configure_logging()
    logger.info("Starting attempt API…")

    assessment_dir = Path(ASSESSMENT_DIRECTORY)
    manager = build_attempt_manager(assessment_dir)
    if not assessment_dir.is_dir():
        logger.warning("No assessment directory at %s; serving an empty catalog", assessment_dir.resolve())

    run_api_server(manager, host=DEFAULT_HOST, port=DEFAULT_PORT)


if __name__ == "__main__":
    main()
