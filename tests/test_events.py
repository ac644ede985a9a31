# tests/test_events.py
import argparse
from unittest.mock import MagicMock

import pytest

from app import create_app, init_twitch_config, shutdown_services, start_chat_bot
from events import (
    USER_ADDED_MESSAGE,
    PayloadError,
    parse_label,
    parse_module_action,
)
from stickpm.chat.twitch_bot import TwitchConfig
from stickpm.core.session_registry import SessionRegistry


@pytest.fixture
def server(registry):
    app, socketio = create_app(session_registry=registry)
    return app, socketio


@pytest.fixture
def client(server):
    app, socketio = server
    test_client = socketio.test_client(app)
    test_client.get_received()
    yield test_client
    if test_client.is_connected():
        test_client.disconnect()


def _events(received, name):
    return [msg['args'][0] for msg in received if msg['name'] == name]


# ------------------------------------------------------------------------------
# Payload parsing
# ------------------------------------------------------------------------------

@pytest.mark.parametrize('data, label', [
    ('alice', 'alice'),
    ('  alice ', '  alice '),
    ({'label': 'alice'}, 'alice'),
    ({'username': 'bob'}, 'bob'),
])
def test_parse_label(data, label):
    assert parse_label(data) == label


@pytest.mark.parametrize('data', [None, 42, '', '   ', {}, {'label': None}, ['alice']])
def test_parse_label_rejects_malformed(data):
    with pytest.raises(PayloadError):
        parse_label(data)


def test_parse_module_action_shapes():
    assert parse_module_action({'tag': 'gameModule', 'payload': {'a': 1}}) == ('gameModule', {'a': 1})
    assert parse_module_action({'module': 'themeModule', 'data': {'b': 2}}) == ('themeModule', {'b': 2})
    assert parse_module_action({'module': 'themeModule'}) == ('themeModule', None)


@pytest.mark.parametrize('data', [None, 'gameModule', {}, {'tag': ''}, {'module': 7}])
def test_parse_module_action_rejects_malformed(data):
    with pytest.raises(PayloadError):
        parse_module_action(data)


# ------------------------------------------------------------------------------
# Socket.IO ingress
# ------------------------------------------------------------------------------

def test_new_user_adds_session_and_acks_sender_only(server, client, registry):
    app, socketio = server
    other = socketio.test_client(app)
    other.get_received()

    client.emit('newUser', 'alice')

    acks = _events(client.get_received(), 'userAdded')
    assert len(acks) == 1
    ack = acks[0]
    assert ack['label'] == 'alice'
    assert ack['username'] == 'alice'
    assert ack['message'] == USER_ADDED_MESSAGE
    assert registry.get(ack['session_id']).label == 'alice'

    assert other.get_received() == []
    other.disconnect()


def test_new_user_accepts_object_payload(client, registry):
    client.emit('newUser', {'label': 'bob'})

    acks = _events(client.get_received(), 'userAdded')
    assert acks[0]['label'] == 'bob'
    assert len(registry) == 1


def test_malformed_new_user_rejected(client, registry):
    client.emit('newUser', {'nope': True})

    errors = _events(client.get_received(), 'error')
    assert errors[0]['code'] == 'INVALID_PAYLOAD'
    assert len(registry) == 0
    # Connection keeps working
    client.emit('newUser', 'alice')
    assert len(_events(client.get_received(), 'userAdded')) == 1


def test_module_action_dispatches_without_reply(client, caplog):
    client.emit('moduleAction', {'module': 'gameModule', 'data': {'level': 1}})

    assert client.get_received() == []
    assert any('Game module activated' in r.getMessage() for r in caplog.records)


def test_unknown_module_action_is_dropped(client, registry, caplog):
    registry.add('alice')

    client.emit('moduleAction', {'module': 'mystery', 'data': {}})

    assert client.get_received() == []
    assert len(registry) == 1
    assert any('Unknown module: mystery' in r.getMessage() for r in caplog.records)


def test_malformed_module_action_rejected(client):
    client.emit('moduleAction', 'gameModule')

    errors = _events(client.get_received(), 'error')
    assert errors[0]['code'] == 'INVALID_PAYLOAD'


def test_disconnect_keeps_session(client, registry, scheduler):
    client.emit('newUser', 'alice')
    session_id = _events(client.get_received(), 'userAdded')[0]['session_id']

    client.disconnect()

    assert session_id in registry
    scheduler.advance(SessionRegistry.SESSION_TTL_SECONDS)
    assert session_id not in registry


def test_broadcast_reaches_every_client(server, client):
    app, socketio = server
    other = socketio.test_client(app)
    other.get_received()
    events = app.extensions['stickpm']['events']

    events.broadcast('botCommand', {'command': '!ping', 'username': 'alice'})

    for c in (client, other):
        assert _events(c.get_received(), 'botCommand') == [{'command': '!ping', 'username': 'alice'}]
    other.disconnect()


# ------------------------------------------------------------------------------
# HTTP routes
# ------------------------------------------------------------------------------

def test_health(server, registry):
    app, _ = server
    registry.add('alice')

    response = app.test_client().get('/health')

    assert response.status_code == 200
    body = response.get_json()
    assert body['status'] == 'ok'
    assert body['sessions_count'] == 1
    assert body['modules'] == ['gameModule', 'themeModule', 'botCommand']


def test_list_sessions(server, registry):
    app, _ = server
    session_id = registry.add('alice')

    body = app.test_client().get('/api/sessions').get_json()

    assert [s['id'] for s in body] == [session_id]
    assert body[0]['label'] == 'alice'


# ------------------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------------------

def _args(**overrides):
    defaults = dict(
        twitch_username=None,
        twitch_token=None,
        twitch_channel=None,
        no_twitch_reconnect=False,
        no_twitch_secure=False,
    )
    defaults.update(overrides)
    return argparse.Namespace(**defaults)


def test_cli_overrides_env(monkeypatch):
    monkeypatch.delenv('TWITCH_RECONNECT', raising=False)
    monkeypatch.delenv('TWITCH_SECURE', raising=False)
    monkeypatch.setenv('TWITCH_BOT_USERNAME', 'envbot')
    monkeypatch.setenv('TWITCH_OAUTH_TOKEN', 'envtoken')
    monkeypatch.setenv('TWITCH_CHANNEL', 'envchan')

    config = init_twitch_config(_args(twitch_channel='clichan', no_twitch_secure=True))

    assert config.username == 'envbot'
    assert config.channel == 'clichan'
    assert config.secure is False
    assert config.reconnect is True


def test_partial_config_warns(monkeypatch, caplog):
    for var in ('TWITCH_BOT_USERNAME', 'TWITCH_OAUTH_TOKEN', 'TWITCH_CHANNEL'):
        monkeypatch.delenv(var, raising=False)

    config = init_twitch_config(_args(twitch_username='bot'))

    assert not config.is_complete
    assert any('Twitch bot disabled' in r.getMessage() for r in caplog.records)


def test_start_chat_bot_skips_incomplete_config(server):
    _, socketio = server
    assert start_chat_bot(socketio, TwitchConfig()) is None


def test_shutdown_services_stops_bot_and_cancels_timers(registry, scheduler):
    registry.add('alice')
    registry.start_sweeper(10)
    bot = MagicMock()

    shutdown_services(registry, bot)

    bot.stop.assert_called_once_with()
    assert scheduler.pending == []


def test_shutdown_services_survives_bot_failure(registry, scheduler, caplog):
    registry.add('alice')
    bot = MagicMock()
    bot.stop.side_effect = OSError('socket closed')

    shutdown_services(registry, bot)

    assert scheduler.pending == []
    assert any('Failed to stop Twitch bot' in r.getMessage() for r in caplog.records)


def test_new_user_label_is_stored_as_sent(client, registry):
    client.emit('newUser', '  alice ')

    ack = _events(client.get_received(), 'userAdded')[0]
    assert ack['label'] == '  alice '
    assert registry.get(ack['session_id']).label == '  alice '
