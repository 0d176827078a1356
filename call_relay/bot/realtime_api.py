import asyncio
import logging
import time
import traceback
from typing import AsyncIterator, Optional

import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, ConnectionClosedOK

from call_relay.config.constants import (
    CONFIG_SEND_DELAY,
    CONNECTION_TIMEOUT,
    DEFAULT_REALTIME_MODEL,
    LOGGER_NAME,
    REALTIME_BETA_HEADER,
    REALTIME_ERROR,
    REALTIME_SESSION_CREATED,
    REALTIME_URL_TEMPLATE,
    WS_MAX_QUEUE,
    WS_MAX_SIZE,
    WS_PING_INTERVAL,
)
from call_relay.config.settings import AuthConfigurationError
from call_relay.models.realtime_schemas import (
    InputAudioBufferAppendCommand,
    RealtimeServerEvent,
    SessionConfiguration,
    SessionUpdateCommand,
)

logger = logging.getLogger(LOGGER_NAME)


class RealtimeUpstreamClient:
    """
    Client owning one connection to the OpenAI Realtime API for a single call.

    The client sends exactly one ``session.update`` per connection. It is sent
    once the endpoint acknowledges the new session with ``session.created``, or
    after ``ready_timeout`` seconds if that acknowledgment never arrives.
    Caller audio is sent best effort: while the connection is not open,
    ``append_audio`` drops the chunk instead of queueing it.
    """

    def __init__(self, api_key: str, session_config: SessionConfiguration,
                 url: Optional[str] = None, ready_timeout: float = CONFIG_SEND_DELAY):
        if not api_key or not api_key.strip():
            raise AuthConfigurationError("OpenAI API key is required to open a Realtime connection")
        self.api_key = api_key
        self.session_config = session_config
        self.url = url or REALTIME_URL_TEMPLATE.format(model=DEFAULT_REALTIME_MODEL)
        self.ready_timeout = ready_timeout
        self.ws = None
        self._connection_active = False
        self._is_closing = False
        self._config_sent = False
        self._remote_ready = asyncio.Event()
        self._config_task: Optional[asyncio.Task] = None

    @property
    def is_open(self) -> bool:
        """True while the socket is connected and not being torn down."""
        return self._connection_active and not self._is_closing and self.ws is not None

    @property
    def configuration_sent(self) -> bool:
        return self._config_sent

    async def connect(self) -> None:
        """
        Connect to the Realtime WebSocket endpoint and schedule the session handshake.

        Raises:
            asyncio.TimeoutError: If the endpoint does not answer within CONNECTION_TIMEOUT
            OSError, websockets.exceptions.InvalidHandshake: If the connection is refused
        """
        if self._is_closing:
            raise RuntimeError("Cannot connect - client is closing")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "OpenAI-Beta": REALTIME_BETA_HEADER,
        }
        logger.info(f"Connecting to OpenAI Realtime API at {self.url}")
        connection_start = time.time()
        self.ws = await asyncio.wait_for(
            websockets.connect(
                self.url,
                max_size=WS_MAX_SIZE,
                max_queue=WS_MAX_QUEUE,
                ping_interval=WS_PING_INTERVAL,
                ping_timeout=10,
                compression=None,  # Disable compression for lower latency
                additional_headers=headers,
            ),
            timeout=CONNECTION_TIMEOUT,
        )
        logger.debug(f"WebSocket connection established in {time.time() - connection_start:.2f} seconds")

        self._connection_active = True
        logger.info("Connected to the OpenAI Realtime API")
        self._on_ready()

    def _on_ready(self) -> None:
        """Schedule the configuration handshake; runs once per connection."""
        if self._config_task is not None:
            return
        self._config_task = asyncio.create_task(self._configure_when_ready())

    async def _configure_when_ready(self) -> None:
        try:
            await asyncio.wait_for(self._remote_ready.wait(), timeout=self.ready_timeout)
            logger.debug("Realtime session acknowledged, sending configuration")
        except asyncio.TimeoutError:
            logger.debug(f"No session acknowledgment after {self.ready_timeout}s, sending configuration anyway")
        try:
            await self.send_configuration()
        except ConnectionClosed as e:
            logger.warning(f"Connection closed before session configuration could be sent: {e}")
            self._connection_active = False
        except Exception as e:
            # Nothing awaits this task
            logger.error(f"Error sending session configuration: {e}")
            logger.debug(f"Session configuration error details: {traceback.format_exc()}")

    async def send_configuration(self, config: Optional[SessionConfiguration] = None) -> bool:
        """
        Send the session.update command.

        Args:
            config: Configuration to send instead of the one given at construction

        Returns:
            bool: True if the command was sent, False if it was already sent or
            the connection is not open
        """
        if self._config_sent:
            logger.debug("Session configuration already sent, ignoring")
            return False
        if not self.is_open:
            logger.debug("Connection not open, skipping session configuration")
            return False

        command = SessionUpdateCommand(session=config or self.session_config)
        self._config_sent = True
        payload = command.model_dump_json()
        await self.ws.send(payload)
        logger.info(f"Sending session update: {payload}")
        return True

    async def append_audio(self, payload: str) -> bool:
        """
        Send a chunk of caller audio to the input buffer.

        Args:
            payload: Base64-encoded audio exactly as received from the telephony side

        Returns:
            bool: True if sent, False if dropped because the connection is not open
        """
        if not self.is_open:
            return False
        command = InputAudioBufferAppendCommand(audio=payload)
        try:
            await self.ws.send(command.model_dump_json())
        except ConnectionClosed as e:
            logger.warning(f"Connection closed while sending audio: {e}")
            self._connection_active = False
            return False
        return True

    async def events(self) -> AsyncIterator[RealtimeServerEvent]:
        """
        Yield parsed events from the Realtime API until the connection closes.

        Malformed messages are logged with their raw payload and skipped.
        """
        if self.ws is None:
            logger.error("WebSocket not initialized for receive loop")
            return

        try:
            async for message in self.ws:
                try:
                    event = RealtimeServerEvent.model_validate_json(message)
                except ValidationError as e:
                    logger.error(f"Error processing OpenAI message: {e} Raw message: {message!r}")
                    continue

                if event.type == REALTIME_SESSION_CREATED:
                    self._remote_ready.set()
                elif event.type == REALTIME_ERROR:
                    logger.error(f"Received error from OpenAI: {event.model_extra}")
                yield event
        except ConnectionClosedOK:
            logger.info("OpenAI WebSocket connection closed normally")
        except ConnectionClosedError as e:
            logger.warning(f"OpenAI WebSocket connection closed unexpectedly: {e}")
            logger.debug(f"Receive loop error details: {traceback.format_exc()}")
        finally:
            self._connection_active = False

    async def close(self) -> None:
        """Close the WebSocket connection and cancel the pending handshake."""
        if self._is_closing:
            return
        self._is_closing = True
        self._connection_active = False

        if self._config_task and not self._config_task.done():
            self._config_task.cancel()
            try:
                await self._config_task
            except asyncio.CancelledError:
                logger.debug("Pending session configuration cancelled")

        if self.ws is not None:
            try:
                await self.ws.close()
            except ConnectionClosed as e:
                logger.debug(f"OpenAI WebSocket already closed: {e}")
        logger.info("OpenAI Realtime client closed")
