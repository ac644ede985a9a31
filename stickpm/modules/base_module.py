"""
Base module interface for pluggable module-action handlers.

Every module kind (game, theme, bot command) inherits from BaseModule and is
registered once at startup. A module declares the tag clients use to reach it
and turns the raw event data into its own payload type before handling it.
"""

from abc import ABC, abstractmethod
from typing import Any


class InvalidPayloadError(ValueError):
    """Raised by parse_payload when event data does not fit the module."""


class BaseModule(ABC):
    """
    Abstract base class for all modules.

    Modules inherit from this class and implement:
    - parse_payload(): Validate raw event data and build the typed payload
    - handle(): Act on the parsed payload

    Class Attributes:
        MODULE_TAG: Tag clients send in moduleAction events (e.g., 'gameModule')
        MODULE_NAME: Human-readable name (e.g., 'Game')
    """

    MODULE_TAG: str = ""
    MODULE_NAME: str = ""

    def __init__(self, session_registry: 'SessionRegistry'):
        """
        Initialize the module with access to the session registry.

        Args:
            session_registry: The shared SessionRegistry
        """
        self.session_registry = session_registry

    @abstractmethod
    def parse_payload(self, data: Any) -> Any:
        """
        Validate raw event data.

        Args:
            data: Payload exactly as received from the client

        Returns:
            The module's payload object

        Raises:
            InvalidPayloadError: If data has the wrong shape
        """
        pass

    @abstractmethod
    def handle(self, payload: Any) -> None:
        """
        Act on a parsed payload. Return value is ignored.

        Args:
            payload: Result of parse_payload()
        """
        pass

