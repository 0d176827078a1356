import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from call_relay.bot.call_session import CallSession, SessionState
from call_relay.bot.realtime_api import RealtimeUpstreamClient
from call_relay.config.settings import Settings
from call_relay.session_registry import SessionRegistry


@pytest.fixture
def settings():
    return Settings(
        openai_api_key="test-api-key",
        realtime_url="wss://realtime.example.test/v1/realtime",
        config_send_delay=0.25,
        voice="verse",
    )


@pytest.fixture
def registry(settings):
    return SessionRegistry(settings)


def test_create_session_wires_upstream_from_settings(registry, telephony_socket):
    session = registry.create_session(telephony_socket)

    assert isinstance(session, CallSession)
    assert isinstance(session.upstream, RealtimeUpstreamClient)
    assert session.upstream.url == "wss://realtime.example.test/v1/realtime"
    assert session.upstream.ready_timeout == 0.25
    assert session.upstream.session_config.voice == "verse"
    assert session.downstream.websocket is telephony_socket
    assert session.state is SessionState.CONNECTING


def test_sessions_share_one_configuration(registry, telephony_socket):
    first = registry.create_session(telephony_socket)
    second = registry.create_session(telephony_socket)

    assert first.upstream.session_config is second.upstream.session_config
    assert first.session_key != second.session_key


@pytest.mark.asyncio
async def test_handle_websocket_tracks_session_while_running(registry, telephony_socket):
    seen = {}

    async def run():
        seen["active"] = registry.active_count
        seen["session"] = registry.get_session(session.session_key)

    session = MagicMock(spec=CallSession)
    session.session_key = "call-1"
    session.run = AsyncMock(side_effect=run)

    with patch.object(registry, "create_session", return_value=session):
        await registry.handle_websocket(telephony_socket)

    assert telephony_socket.accepted
    assert seen == {"active": 1, "session": session}
    assert registry.active_count == 0


@pytest.mark.asyncio
async def test_handle_websocket_removes_session_on_error(registry, telephony_socket):
    session = MagicMock(spec=CallSession)
    session.session_key = "call-1"
    session.run = AsyncMock(side_effect=RuntimeError("boom"))

    with patch.object(registry, "create_session", return_value=session):
        with pytest.raises(RuntimeError):
            await registry.handle_websocket(telephony_socket)

    assert registry.active_count == 0


@pytest.mark.asyncio
async def test_handle_websocket_runs_full_call(
    registry, telephony_socket, realtime_socket, mock_connect, wait_until
):
    telephony_socket.push({"event": "start", "start": {"streamSid": "S1"}})
    task = asyncio.create_task(registry.handle_websocket(telephony_socket))
    await wait_until(lambda: registry.active_count == 1 and mock_connect.await_count == 1)

    telephony_socket.disconnect()
    await asyncio.wait_for(task, timeout=1)

    assert telephony_socket.accepted
    assert realtime_socket.closed
    assert registry.active_count == 0


@pytest.mark.asyncio
async def test_rejects_when_at_capacity(telephony_socket):
    registry = SessionRegistry(Settings(openai_api_key="test-api-key", max_concurrent_sessions=1))
    registry.sessions["existing"] = MagicMock(spec=CallSession)

    await registry.handle_websocket(telephony_socket)

    assert not telephony_socket.accepted
    assert telephony_socket.close_code == 1013
    assert registry.active_count == 1


def test_unlimited_by_default(registry):
    for index in range(50):
        registry.sessions[f"call-{index}"] = MagicMock(spec=CallSession)

    assert not registry.at_capacity()


@pytest.mark.asyncio
async def test_missing_api_key_closes_connection(telephony_socket):
    registry = SessionRegistry(Settings(openai_api_key=None))

    await registry.handle_websocket(telephony_socket)

    assert telephony_socket.accepted
    assert telephony_socket.closed
    assert registry.active_count == 0
