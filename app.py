"""
StickPM Presence Server - Main Flask Application
Entry point: Socket.IO presence tracking plus the Twitch chat bridge.
"""

import os
import logging
import argparse
from dataclasses import replace
from flask import Flask, jsonify
from flask_socketio import SocketIO

from stickpm.core.session_registry import SessionRegistry
from stickpm.modules import ModuleRegistry, ALL_MODULES
from stickpm.chat.twitch_bot import TwitchConfig, TwitchChatBot
from events import register_events

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(session_registry=None, module_classes=None):
    """
    Build the Flask app, Socket.IO server and registries.

    Args:
        session_registry: Registry to use (a new SessionRegistry by default)
        module_classes: Module classes to register (ALL_MODULES by default)

    Returns:
        (app, socketio)
    """
    app = Flask(__name__)
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'stickpm-dev-secret-key')

    # Initialize Socket.IO with CORS for local network / OBS browser sources
    socketio = SocketIO(app, cors_allowed_origins="*")

    if session_registry is None:
        session_registry = SessionRegistry()
    module_registry = ModuleRegistry(session_registry)

    # Register Modules
    for module_class in (ALL_MODULES if module_classes is None else module_classes):
        module_registry.register(module_class)

    # Register Socket.IO event handlers
    events = register_events(socketio, session_registry, module_registry)

    app.extensions['stickpm'] = {
        'session_registry': session_registry,
        'module_registry': module_registry,
        'events': events,
    }

    # =========================================================================
    # HTTP ROUTES
    # =========================================================================

    @app.route('/health')
    def health():
        """Health check endpoint."""
        return {
            'status': 'ok',
            'sessions_count': len(session_registry),
            'modules': module_registry.get_all_tags()
        }

    @app.route('/api/sessions')
    def list_sessions():
        """Active sessions, oldest first."""
        return jsonify([s.to_dict() for s in session_registry.list_sessions()])

    return app, socketio


def init_twitch_config(args) -> TwitchConfig:
    """Initialize Twitch configuration from env vars and CLI args."""
    config = TwitchConfig.from_env()

    # CLI args override env vars
    overrides = {}
    if args.twitch_username:
        overrides['username'] = args.twitch_username
    if args.twitch_token:
        overrides['token'] = args.twitch_token
    if args.twitch_channel:
        overrides['channel'] = args.twitch_channel
    if args.no_twitch_reconnect:
        overrides['reconnect'] = False
    if args.no_twitch_secure:
        overrides['secure'] = False
    config = replace(config, **overrides)

    if config.is_complete:
        logger.info(f"Twitch bot enabled for channel: {config.irc_channel}")
    elif config.username or config.token or config.channel:
        logger.warning("Twitch bot disabled: username, token and channel are all required")
    return config


def start_chat_bot(socketio, config: TwitchConfig):
    """Start the Twitch bot in a background task. Returns None when not configured."""
    if not config.is_complete:
        return None

    bot = TwitchChatBot(config, broadcast=lambda event, payload: socketio.emit(event, payload))
    socketio.start_background_task(bot.start)
    return bot


def shutdown_services(session_registry, bot=None):
    """Stop the chat bot (without reconnecting) and cancel pending registry timers."""
    if bot is not None:
        try:
            bot.stop()
        except Exception as e:
            logger.exception(f"Failed to stop Twitch bot: {e}")
    session_registry.shutdown()
    logger.info("Server stopped")


# =============================================================================
# MAIN
# =============================================================================

def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='StickPM Presence Server',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Twitch Chat Configuration:
  The chat bot starts only when username, token and channel are all set.

  Environment variables:
    TWITCH_BOT_USERNAME  - Bot account login
    TWITCH_OAUTH_TOKEN   - OAuth token ('oauth:' prefix optional)
    TWITCH_CHANNEL       - Channel to join
    TWITCH_RECONNECT     - Reconnect on drop (default: true)
    TWITCH_SECURE        - Use TLS (default: true)
        """
    )
    parser.add_argument(
        '--port',
        type=int,
        default=int(os.environ.get('PORT', 13370)),
        help='Server port (default: 13370)'
    )
    parser.add_argument(
        '--no-debug',
        action='store_true',
        help='Disable debug mode'
    )
    parser.add_argument(
        '--log-level',
        type=str,
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: INFO)'
    )
    parser.add_argument(
        '--sweep-interval',
        type=float,
        default=float(os.environ.get('SESSION_SWEEP_INTERVAL', 0)),
        help='Seconds between expired-session sweeps, 0 disables (default: 0)'
    )
    parser.add_argument('--twitch-username', type=str, help='Twitch bot username')
    parser.add_argument('--twitch-token', type=str, help='Twitch OAuth token')
    parser.add_argument('--twitch-channel', type=str, help='Twitch channel to join')
    parser.add_argument(
        '--no-twitch-reconnect',
        action='store_true',
        help='Do not reconnect when the chat connection drops'
    )
    parser.add_argument(
        '--no-twitch-secure',
        action='store_true',
        help='Connect to Twitch chat without TLS'
    )
    return parser.parse_args()


if __name__ == '__main__':
    args = parse_args()
    logging.getLogger().setLevel(args.log_level)

    app, socketio = create_app()
    session_registry = app.extensions['stickpm']['session_registry']

    if args.sweep_interval > 0:
        session_registry.start_sweeper(args.sweep_interval)

    twitch_config = init_twitch_config(args)
    bot = start_chat_bot(socketio, twitch_config)

    logger.info("Starting StickPM Presence Server...")
    logger.info(f"Socket.IO: http://<your-ip>:{args.port}/")

    try:
        # Reloader would start a second chat bot
        socketio.run(
            app,
            host='0.0.0.0',
            port=args.port,
            debug=not args.no_debug,
            use_reloader=False,
            allow_unsafe_werkzeug=True
        )
    finally:
        shutdown_services(session_registry, bot)
