"""Static metadata describing the attempt engine."""

APP_NAME = "QuizQt Attempts"
APP_VERSION = "0.2"
APP_ABOUT_TEXT = (
    "Timed assessment attempts with free-text answers and manual review. "
    "Learners start and submit attempts over HTTP; reviewers score each answer."
)
