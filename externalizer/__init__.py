"""Externalizer - move hardcoded UI text into a string-resource table."""

# Load .env so EXTERNALIZER_* settings are visible to every entry point
# (CLI, pytest, embedding hosts) that imports externalizer.
from dotenv import load_dotenv

load_dotenv()

# Keep in sync with pyproject.toml [project] version.
__version__ = "0.1.0"


def open_session(project_root, **kwargs):
    """Create an ExtractionSession for a project root.

    Convenience entry point for hosts that only need scan/commit.
    """
    from externalizer.session import ExtractionSession

    return ExtractionSession(project_root, **kwargs)
