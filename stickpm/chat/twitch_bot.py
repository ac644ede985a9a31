"""
TwitchChatBot: Twitch chat ingress over IRC.

Joins one channel, routes public messages through ChatCommandRouter, and
hands matched commands to a broadcast callable (Socket.IO in the app).
"""

import os
import ssl
import logging
import functools
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

import irc.bot
import irc.connection

from .commands import ChatCommandRouter

logger = logging.getLogger(__name__)

TWITCH_IRC_HOST = 'irc.chat.twitch.tv'
TWITCH_IRC_PORT_SSL = 6697
TWITCH_IRC_PORT_PLAIN = 6667


def _env_flag(value: Optional[str], default: bool) -> bool:
    if value is None or value == '':
        return default
    return value.strip().lower() not in ('0', 'false', 'no', 'off')


@dataclass(frozen=True)
class TwitchConfig:
    """
    Startup configuration for the chat bot. Not changed at runtime.

    Attributes:
        username: Bot identity (login name)
        token: OAuth token, with or without the 'oauth:' prefix
        channel: Channel to join, with or without the leading '#'
        reconnect: Reconnect automatically when the connection drops
        secure: Connect over TLS
    """
    username: str = ''
    token: str = ''
    channel: str = ''
    reconnect: bool = True
    secure: bool = True
    host: str = TWITCH_IRC_HOST
    port: Optional[int] = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> 'TwitchConfig':
        """Build config from TWITCH_* environment variables."""
        return cls(
            username=environ.get('TWITCH_BOT_USERNAME', ''),
            token=environ.get('TWITCH_OAUTH_TOKEN', ''),
            channel=environ.get('TWITCH_CHANNEL', ''),
            reconnect=_env_flag(environ.get('TWITCH_RECONNECT'), True),
            secure=_env_flag(environ.get('TWITCH_SECURE'), True),
        )

    @property
    def is_complete(self) -> bool:
        return bool(self.username and self.token and self.channel)

    @property
    def password(self) -> str:
        if self.token.startswith('oauth:'):
            return self.token
        return f'oauth:{self.token}'

    @property
    def irc_channel(self) -> str:
        return '#' + self.channel.lstrip('#').lower()

    @property
    def irc_port(self) -> int:
        if self.port:
            return self.port
        return TWITCH_IRC_PORT_SSL if self.secure else TWITCH_IRC_PORT_PLAIN


class NoReconnect(irc.bot.ReconnectStrategy):
    """Reconnect strategy that stays disconnected."""

    def run(self, bot):
        logger.warning("Twitch connection lost; reconnect disabled")


class TwitchChatBot(irc.bot.SingleServerIRCBot):
    """
    Single-channel Twitch chat bot.

    Attributes:
        config: The TwitchConfig used to connect
        channel: IRC channel name ('#name')
        router: Command router applied to each public message
        broadcast: Callable(event, payload) delivering to Socket.IO clients
    """

    def __init__(self, config: TwitchConfig,
                 broadcast: Callable[[str, Dict[str, Any]], None],
                 router: Optional[ChatCommandRouter] = None):
        connect_params = {}
        if config.secure:
            context = ssl.create_default_context()
            wrapper = functools.partial(context.wrap_socket, server_hostname=config.host)
            connect_params['connect_factory'] = irc.connection.Factory(wrapper=wrapper)

        recon = irc.bot.ExponentialBackoff() if config.reconnect else NoReconnect()

        server = irc.bot.ServerSpec(config.host, config.irc_port, config.password)
        super().__init__(
            [server],
            config.username.lower(),
            config.username,
            recon=recon,
            **connect_params
        )

        self.config = config
        self.channel = config.irc_channel
        self.router = router or ChatCommandRouter(config.username)
        self.broadcast = broadcast

    def on_welcome(self, connection, event):
        connection.join(self.channel)
        logger.info(f"Twitch bot {self.config.username} joined {self.channel}")

    def on_disconnect(self, connection, event):
        logger.warning(f"Twitch bot disconnected from {self.config.host}")

    def on_pubmsg(self, connection, event):
        """Route one chat message. Failures are logged, never raised into the reactor."""
        author = event.source.nick
        message = event.arguments[0] if event.arguments else ''
        target = event.target or self.channel

        try:
            self.router.handle_message(
                author,
                message,
                reply=lambda text: connection.privmsg(target, text),
                broadcast=self.broadcast
            )
        except Exception as e:
            logger.exception(f"Error handling chat message from {author}: {e}")

    def stop(self, message: str = 'Shutting down') -> None:
        """Disconnect without triggering a reconnect."""
        self.recon = NoReconnect()
        self.connection.disconnect(message)
