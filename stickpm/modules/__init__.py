"""Pluggable modules reachable through moduleAction events."""

from .base_module import BaseModule, InvalidPayloadError
from .module_registry import ModuleRegistry

from .game.module import GameModule
from .theme.module import ThemeModule
from .bot.module import BotCommandModule

# All available modules in registration order
ALL_MODULES = [
    GameModule,
    ThemeModule,
    BotCommandModule,
]

__all__ = [
    'BaseModule', 'InvalidPayloadError', 'ModuleRegistry',
    'ALL_MODULES',
    'GameModule', 'ThemeModule', 'BotCommandModule',
]
