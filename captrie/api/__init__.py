"""captrie API package.

This module provides an optional FastAPI service layer that answers
requirement checks and specialization lookups against a loaded manifest.
"""

from .server import create_app  # noqa: F401
