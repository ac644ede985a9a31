"""
Chat command bindings and the router that applies them to incoming messages.

The router has no knowledge of the IRC connection or of Socket.IO; the caller
passes in how to reply and how to broadcast.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

BOT_COMMAND_EVENT = 'botCommand'

ReplyFn = Callable[[str], None]
BroadcastFn = Callable[[str, Dict[str, Any]], None]


@dataclass(frozen=True)
class ChatCommand:
    """
    A chat trigger and its response.

    Attributes:
        name: Normalized trigger text (e.g., '!ping')
        reply: Text sent back into chat
    """
    name: str
    reply: str


DEFAULT_COMMANDS = {
    '!ping': ChatCommand(name='!ping', reply='Pong!'),
}


def normalize_message(message: str) -> str:
    """Normalize chat text for command lookup (case-insensitive, surrounding whitespace ignored)."""
    return message.strip().lower()


class ChatCommandRouter:
    """
    Matches chat messages against the command bindings.

    On a match the router replies in chat and broadcasts a botCommand event
    so Socket.IO clients see the same command.
    """

    def __init__(self, bot_username: str, commands: Optional[Dict[str, ChatCommand]] = None):
        self.bot_username = bot_username.lower()
        self.commands: Dict[str, ChatCommand] = dict(DEFAULT_COMMANDS if commands is None else commands)

    def lookup(self, message: str) -> Optional[ChatCommand]:
        """Find the command bound to message, if any."""
        return self.commands.get(normalize_message(message))

    def is_self(self, author: str) -> bool:
        """Whether author is the bot's own identity."""
        return (author or '').lower() == self.bot_username

    def handle_message(self, author: str, message: str,
                       reply: ReplyFn, broadcast: BroadcastFn) -> bool:
        """
        Route one chat message.

        Returns:
            True if a command matched and both effects were performed
        """
        if self.is_self(author):
            return False

        command = self.lookup(message)
        if not command:
            return False

        reply(command.reply)
        logger.info(f"Responded to {command.name} from {author}")
        broadcast(BOT_COMMAND_EVENT, {'command': command.name, 'username': author})
        return True
