"""StickPM presence server - session tracking, module dispatch and Twitch chat bridge."""

__version__ = '0.1.0'
