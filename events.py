"""
Socket.IO Event Handlers for the StickPM presence server.
Presence announcements go to the SessionRegistry, module actions to the ModuleRegistry.
"""

import logging
from typing import Any, Dict, Tuple
from flask import request
from flask_socketio import emit

logger = logging.getLogger(__name__)

# Inbound events
NEW_USER_EVENT = 'newUser'
MODULE_ACTION_EVENT = 'moduleAction'

# Outbound events
USER_ADDED_EVENT = 'userAdded'
ERROR_EVENT = 'error'

USER_ADDED_MESSAGE = 'User successfully added.'


class PayloadError(ValueError):
    """Inbound event data is missing a required field or has the wrong type."""


def parse_label(data: Any) -> str:
    """
    Extract the display label from a newUser payload.

    Accepts a bare string or an object with 'label' (or 'username').
    """
    if isinstance(data, dict):
        data = data.get('label', data.get('username'))
    if not isinstance(data, str):
        raise PayloadError('newUser requires a label string')
    if not data.strip():
        raise PayloadError('Label must not be empty')
    return data


def parse_module_action(data: Any) -> Tuple[str, Any]:
    """
    Extract (tag, payload) from a moduleAction payload.

    Accepts {'tag', 'payload'} or {'module', 'data'}.
    """
    if not isinstance(data, dict):
        raise PayloadError('moduleAction requires an object')
    tag = data.get('tag', data.get('module'))
    if not isinstance(tag, str) or not tag:
        raise PayloadError('moduleAction requires a module tag')
    payload = data['payload'] if 'payload' in data else data.get('data')
    return tag, payload


class PresenceEvents:
    """Socket.IO handlers bound to one app's registries."""

    def __init__(self, socketio, session_registry, module_registry):
        self.socketio = socketio
        self.session_registry = session_registry
        self.module_registry = module_registry

    def broadcast(self, event: str, payload: Dict[str, Any]) -> None:
        """Emit an event to every connected client."""
        self.socketio.emit(event, payload)

    def on_connect(self, auth=None):
        logger.info(f"Client connected: {request.sid}")

    def on_disconnect(self, *args):
        # Sessions are left to expire on their own
        logger.info(f"Client disconnected: {request.sid}")

    def on_new_user(self, data=None):
        try:
            label = parse_label(data)
        except PayloadError as e:
            self._reject(NEW_USER_EVENT, e)
            return

        try:
            session_id = self.session_registry.add(label)
        except Exception as e:
            logger.exception(f"Failed to add session for {label}: {e}")
            emit(ERROR_EVENT, {'code': 'SERVER_ERROR', 'message': 'Could not add user'})
            return

        emit(USER_ADDED_EVENT, {
            'label': label,
            'username': label,
            'session_id': session_id,
            'message': USER_ADDED_MESSAGE
        })

    def on_module_action(self, data=None):
        try:
            tag, payload = parse_module_action(data)
        except PayloadError as e:
            self._reject(MODULE_ACTION_EVENT, e)
            return

        self.module_registry.dispatch(tag, payload)

    def _reject(self, event_name: str, error: Exception):
        logger.warning(f"Rejected {event_name} from {request.sid}: {error}")
        emit(ERROR_EVENT, {'code': 'INVALID_PAYLOAD', 'message': str(error)})


def register_events(sio, session_registry, module_registry) -> PresenceEvents:
    """Register all Socket.IO event handlers."""
    handlers = PresenceEvents(sio, session_registry, module_registry)

    sio.on_event('connect', handlers.on_connect)
    sio.on_event('disconnect', handlers.on_disconnect)
    sio.on_event(NEW_USER_EVENT, handlers.on_new_user)
    sio.on_event(MODULE_ACTION_EVENT, handlers.on_module_action)

    logger.info("Socket.IO events registered")
    return handlers
