"""Twitch chat ingress."""

from .commands import ChatCommand, ChatCommandRouter, DEFAULT_COMMANDS, BOT_COMMAND_EVENT
from .twitch_bot import TwitchConfig, TwitchChatBot, NoReconnect

__all__ = [
    'ChatCommand', 'ChatCommandRouter', 'DEFAULT_COMMANDS', 'BOT_COMMAND_EVENT',
    'TwitchConfig', 'TwitchChatBot', 'NoReconnect',
]
