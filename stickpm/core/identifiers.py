"""Session identifier generation."""

import uuid


def generate_session_id() -> str:
    """Generate an opaque session identifier (random UUID4 string)."""
    return str(uuid.uuid4())
