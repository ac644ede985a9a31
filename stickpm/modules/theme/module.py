import logging
from typing import Any
from ..base_module import BaseModule

logger = logging.getLogger(__name__)

class ThemeModule(BaseModule):
    MODULE_TAG = "themeModule"
    MODULE_NAME = "Theme"

    def parse_payload(self, data: Any) -> Any:
        # Any JSON value is accepted as-is
        return data

    def handle(self, payload: Any) -> None:
        # Theme customization plugs in here
        logger.info(f"Theme module activated with data: {payload}")
