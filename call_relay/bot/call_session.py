"""
Per-call relay between a Twilio media stream and the OpenAI Realtime API.

A CallSession owns one MediaStreamConnection (downstream) and one
RealtimeUpstreamClient (upstream) for the lifetime of a phone call. It moves
through ``CONNECTING -> AWAITING_STREAM_START -> ACTIVE -> CLOSED`` and decides
what to do with every inbound event using the translation rules below:

    Downstream start                 -> record the stream identifier
    Downstream media, upstream open  -> input_audio_buffer.append upstream
    Downstream media, not open       -> drop
    Upstream response.audio.delta    -> media event downstream (needs streamSid)
    Anything else                    -> log and ignore

Drops never queue and never surface to the caller.
"""

import asyncio
import logging
import uuid
from enum import Enum
from typing import List, Optional

from call_relay.bot.media_stream import MediaStreamConnection
from call_relay.bot.realtime_api import RealtimeUpstreamClient
from call_relay.config.constants import (
    LOGGER_NAME,
    REALTIME_AUDIO_DELTA,
    REALTIME_SESSION_UPDATED,
    STREAM_EVENT_MEDIA,
    STREAM_EVENT_START,
)
from call_relay.models.media_stream_schemas import InboundStreamEvent
from call_relay.models.realtime_schemas import RealtimeServerEvent

logger = logging.getLogger(LOGGER_NAME)


class SessionState(str, Enum):
    """Lifecycle of a call session."""
    CONNECTING = "connecting"
    AWAITING_STREAM_START = "awaiting_stream_start"
    ACTIVE = "active"
    CLOSED = "closed"


class DropPolicy(str, Enum):
    """What happens to a frame whose prerequisite state is missing."""
    BEST_EFFORT = "best_effort"  # discard immediately, count, never retry or buffer


class RelayAction(str, Enum):
    """Outcome of applying the translation rules to one event."""
    RECORD_STREAM = "record_stream"
    FORWARD = "forward"
    DROP = "drop"
    IGNORE = "ignore"


def plan_downstream(event_kind: str, upstream_ready: bool) -> RelayAction:
    """Decide what to do with an event from the telephony side."""
    if event_kind == STREAM_EVENT_START:
        return RelayAction.RECORD_STREAM
    if event_kind == STREAM_EVENT_MEDIA:
        return RelayAction.FORWARD if upstream_ready else RelayAction.DROP
    return RelayAction.IGNORE


def plan_upstream(event_type: str, stream_sid: Optional[str]) -> RelayAction:
    """Decide what to do with an event from the Realtime API."""
    if event_type == REALTIME_AUDIO_DELTA:
        return RelayAction.FORWARD if stream_sid else RelayAction.DROP
    return RelayAction.IGNORE


class CallSession:
    """Pairs the two sockets of one phone call and relays audio between them."""

    def __init__(self, downstream: MediaStreamConnection, upstream: RealtimeUpstreamClient,
                 session_key: Optional[str] = None,
                 drop_policy: DropPolicy = DropPolicy.BEST_EFFORT):
        self.session_key = session_key or str(uuid.uuid4())
        self.downstream: Optional[MediaStreamConnection] = downstream
        self.upstream: Optional[RealtimeUpstreamClient] = upstream
        self.drop_policy = drop_policy
        self.state = SessionState.CONNECTING
        self._stream_sid: Optional[str] = None
        self._tasks: List[asyncio.Task] = []

        self.frames_to_upstream = 0
        self.frames_to_downstream = 0
        self.dropped_frames = 0

    @property
    def stream_sid(self) -> Optional[str]:
        return self._stream_sid

    @property
    def is_closed(self) -> bool:
        return self.state is SessionState.CLOSED

    async def run(self) -> None:
        """
        Relay the call until either socket closes, then close both.

        The telephony side is read from the start, concurrently with dialing the
        Realtime API, so media that arrives before the upstream is ready is
        dropped instead of piling up in the socket buffer.
        """
        logger.info(f"Call session {self.session_key} started")
        downstream_task = asyncio.create_task(
            self._relay_downstream(), name=f"downstream-relay-{self.session_key}"
        )
        connect_task = asyncio.create_task(
            self.upstream.connect(), name=f"upstream-connect-{self.session_key}"
        )
        self._tasks = [downstream_task, connect_task]

        try:
            await asyncio.wait({downstream_task, connect_task}, return_when=asyncio.FIRST_COMPLETED)
            if not _succeeded(connect_task) or downstream_task.done():
                return

            self.state = SessionState.ACTIVE if self._stream_sid else SessionState.AWAITING_STREAM_START
            upstream_task = asyncio.create_task(
                self._relay_upstream(), name=f"upstream-relay-{self.session_key}"
            )
            self._tasks.append(upstream_task)
            await asyncio.wait({downstream_task, upstream_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            await self.close()

    async def _relay_downstream(self) -> None:
        async for event in self.downstream.events():
            await self.handle_downstream_event(event)
        logger.info(f"Telephony stream ended for session {self.session_key}")

    async def _relay_upstream(self) -> None:
        async for event in self.upstream.events():
            await self.handle_upstream_event(event)
        logger.info(f"OpenAI stream ended for session {self.session_key}")

    async def handle_downstream_event(self, event: InboundStreamEvent) -> RelayAction:
        """Apply the translation rules to one event from the telephony side."""
        if self.is_closed:
            return RelayAction.IGNORE

        action = plan_downstream(event.event, self.upstream.is_open)
        if action is RelayAction.RECORD_STREAM:
            self._bind_stream(event.start.streamSid)
        elif action is RelayAction.FORWARD:
            if await self.upstream.append_audio(event.media.payload):
                self.frames_to_upstream += 1
            else:
                action = RelayAction.DROP
                self._drop("upstream closed while sending")
        elif action is RelayAction.DROP:
            self._drop("upstream not ready")
        else:
            logger.info(f"Received non-media event: {event.event}")
        return action

    async def handle_upstream_event(self, event: RealtimeServerEvent) -> RelayAction:
        """Apply the translation rules to one event from the Realtime API."""
        if self.is_closed:
            return RelayAction.IGNORE

        action = plan_upstream(event.type, self._stream_sid)
        if action is RelayAction.FORWARD:
            await self.downstream.send_media(self._stream_sid, event.delta)
            self.frames_to_downstream += 1
        elif action is RelayAction.DROP:
            self._drop("stream identifier unknown")
        elif event.type == REALTIME_SESSION_UPDATED:
            logger.info(f"Session updated successfully: {event.model_dump_json()}")
        else:
            logger.debug(f"Received OpenAI event of type: {event.type}")
        return action

    def _bind_stream(self, stream_sid: str) -> None:
        if self._stream_sid is None:
            self._stream_sid = stream_sid
            logger.info(f"Incoming stream has started {stream_sid}")
            if self.state is SessionState.AWAITING_STREAM_START:
                self.state = SessionState.ACTIVE
        elif stream_sid != self._stream_sid:
            logger.warning(
                f"Ignoring start event for stream {stream_sid}; session is bound to {self._stream_sid}"
            )

    def _drop(self, reason: str) -> None:
        self.dropped_frames += 1
        logger.debug(f"Dropped frame ({self.drop_policy.value}): {reason}")

    async def close(self) -> None:
        """Close both sockets and release them. Safe to call more than once."""
        if self.is_closed:
            return
        self.state = SessionState.CLOSED

        current = asyncio.current_task()
        tasks = [task for task in self._tasks if task is not current]
        for task in tasks:
            if not task.done():
                task.cancel()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for task, result in zip(tasks, results):
            if isinstance(result, Exception):
                logger.error(f"Task {task.get_name()} failed: {result!r}")
        self._tasks = []

        upstream, self.upstream = self.upstream, None
        downstream, self.downstream = self.downstream, None
        await upstream.close()
        await downstream.close()

        logger.info(
            f"Call session {self.session_key} closed: "
            f"{self.frames_to_upstream} frames upstream, "
            f"{self.frames_to_downstream} frames downstream, "
            f"{self.dropped_frames} dropped"
        )


def _succeeded(task: asyncio.Task) -> bool:
    return task.done() and not task.cancelled() and task.exception() is None
