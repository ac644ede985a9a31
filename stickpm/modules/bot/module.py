import logging
from dataclasses import dataclass
from typing import Any
from ..base_module import BaseModule, InvalidPayloadError
from ...chat.commands import DEFAULT_COMMANDS, normalize_message

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BotCommandPayload:
    command: str


class BotCommandModule(BaseModule):
    MODULE_TAG = "botCommand"
    MODULE_NAME = "Bot Command"

    def parse_payload(self, data: Any) -> BotCommandPayload:
        if not isinstance(data, dict):
            raise InvalidPayloadError("expected an object with a 'command' field")
        command = data.get('command')
        if not isinstance(command, str) or not command.strip():
            raise InvalidPayloadError("'command' must be a non-empty string")
        return BotCommandPayload(command=command)

    def handle(self, payload: BotCommandPayload) -> None:
        binding = DEFAULT_COMMANDS.get(normalize_message(payload.command))
        if not binding:
            logger.debug(f"No bot response bound to {payload.command}")
            return
        logger.info(f"Bot responded: {binding.reply}")
