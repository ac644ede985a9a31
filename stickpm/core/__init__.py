"""Core platform components shared by both ingress paths."""

from .identifiers import generate_session_id
from .session_registry import Session, SessionRegistry

__all__ = ['generate_session_id', 'Session', 'SessionRegistry']
