import logging
from typing import Any
from ..base_module import BaseModule

logger = logging.getLogger(__name__)

class GameModule(BaseModule):
    MODULE_TAG = "gameModule"
    MODULE_NAME = "Game"

    def parse_payload(self, data: Any) -> Any:
        # Any JSON value is accepted as-is
        return data

    def handle(self, payload: Any) -> None:
        # Game logic plugs in here
        logger.info(f"Game module activated with data: {payload} ({len(self.session_registry)} active sessions)")
