"""
Bot module: the relay between Twilio Media Streams and the OpenAI Realtime API.

Key components:
- RealtimeUpstreamClient: one outbound connection to the Realtime API. Sends the
  session configuration once, appends caller audio, yields server events.
- MediaStreamConnection: one accepted Twilio media stream. Yields inbound events
  and sends media frames back to the caller.
- CallSession: pairs the two for one phone call and applies the translation rules.

Usage examples:
```python
from call_relay.bot import CallSession, MediaStreamConnection, RealtimeUpstreamClient

async def relay(websocket, settings):
    upstream = RealtimeUpstreamClient(
        settings.require_api_key(),
        settings.session_configuration(),
        url=settings.upstream_url,
    )
    session = CallSession(MediaStreamConnection(websocket), upstream)
    await session.run()  # returns once either side hangs up; both sockets are closed
```
"""

from call_relay.bot.call_session import (
    CallSession,
    DropPolicy,
    RelayAction,
    SessionState,
    plan_downstream,
    plan_upstream,
)
from call_relay.bot.media_stream import MediaStreamConnection
from call_relay.bot.realtime_api import RealtimeUpstreamClient

__all__ = [
    "CallSession",
    "DropPolicy",
    "MediaStreamConnection",
    "RelayAction",
    "RealtimeUpstreamClient",
    "SessionState",
    "plan_downstream",
    "plan_upstream",
]
