"""
Entry point for inbound media stream connections.

The SessionRegistry accepts each Twilio WebSocket, builds a CallSession with a
fresh Realtime API connection for it, keeps track of the sessions that are
currently running, and forgets each one as soon as its call ends.
"""

import logging
from typing import Dict, Optional

from fastapi import WebSocket

from call_relay.bot.call_session import CallSession
from call_relay.bot.media_stream import MediaStreamConnection
from call_relay.bot.realtime_api import RealtimeUpstreamClient
from call_relay.config.constants import LOGGER_NAME, WS_CLOSE_TRY_AGAIN_LATER
from call_relay.config.settings import AuthConfigurationError, Settings

logger = logging.getLogger(LOGGER_NAME)


class SessionRegistry:
    """Creates, tracks and disposes of one CallSession per inbound call.

    Sessions share nothing but the immutable settings and session configuration,
    so the registry needs no locking: it only adds and removes dictionary entries
    from the event loop thread.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.session_config = settings.session_configuration()
        self.sessions: Dict[str, CallSession] = {}

    @property
    def active_count(self) -> int:
        return len(self.sessions)

    def get_session(self, session_key: str) -> Optional[CallSession]:
        return self.sessions.get(session_key)

    def at_capacity(self) -> bool:
        """True when MAX_CONCURRENT_SESSIONS is set and already reached."""
        limit = self.settings.max_concurrent_sessions
        return limit > 0 and self.active_count >= limit

    def create_session(self, websocket: WebSocket) -> CallSession:
        """
        Build a CallSession for an accepted telephony WebSocket.

        Raises:
            AuthConfigurationError: If no API key is configured
        """
        upstream = RealtimeUpstreamClient(
            self.settings.openai_api_key or "",
            self.session_config,
            url=self.settings.upstream_url,
            ready_timeout=self.settings.config_send_delay,
        )
        return CallSession(MediaStreamConnection(websocket), upstream)

    async def handle_websocket(self, websocket: WebSocket) -> None:
        """Handle a media stream WebSocket for the whole duration of the call.

        Args:
            websocket: The FastAPI WebSocket connection, not yet accepted
        """
        if self.at_capacity():
            logger.warning(
                f"Rejecting media stream: {self.active_count} sessions active "
                f"(limit {self.settings.max_concurrent_sessions})"
            )
            await websocket.close(code=WS_CLOSE_TRY_AGAIN_LATER)
            return

        await websocket.accept()
        logger.info("Client has successfully connected.")

        try:
            session = self.create_session(websocket)
        except AuthConfigurationError as e:
            logger.error(f"Cannot start call session: {e}")
            await websocket.close()
            return

        self.sessions[session.session_key] = session
        try:
            await session.run()
        finally:
            self.sessions.pop(session.session_key, None)
            logger.info(f"Session {session.session_key} removed, {self.active_count} still active")
