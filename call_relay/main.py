"""
FastAPI server relaying Twilio phone calls to the OpenAI Realtime API.

Twilio requests ``/incoming-call`` when a call arrives and receives TwiML that
connects the call's audio to the ``/media-stream`` WebSocket. Every media stream
is handed to the SessionRegistry, which relays it to the Realtime API until the
call ends.
"""

from fastapi import FastAPI, Request, Response, WebSocket

from call_relay.config.constants import MEDIA_STREAM_PATH
from call_relay.config.logging_config import configure_logging
from call_relay.config.settings import load_settings
from call_relay.handlers.twiml import build_connect_twiml
from call_relay.session_registry import SessionRegistry

# Load settings (and .env, if present) before anything logs
settings = load_settings()
logger = configure_logging(settings.log_level)

app = FastAPI(
    title="Call Relay",
    description="Bridges Twilio Media Streams with the OpenAI Realtime API",
    version="1.0.0",
)

session_registry = SessionRegistry(settings)


@app.get("/")
async def root():
    """Root endpoint confirming the server is up."""
    return {"message": "Twilio Media Stream Server is running!"}


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers and monitoring tools.

    Returns:
        dict: Status, whether the API key is configured, and the number of calls in progress.
    """
    return {
        "status": "healthy",
        "openai_api_key_configured": settings.api_key_configured,
        "active_sessions": session_registry.active_count,
    }


@app.api_route("/incoming-call", methods=["GET", "POST"])
async def incoming_call(request: Request):
    """Answer an inbound Twilio call with TwiML that opens the media stream."""
    host = request.headers.get("host", request.url.netloc)
    twiml = build_connect_twiml(host, settings.greeting_message, settings.prompt_message)
    logger.info(f"Incoming call, streaming to wss://{host}{MEDIA_STREAM_PATH}")
    return Response(content=twiml, media_type="text/xml")


@app.websocket(MEDIA_STREAM_PATH)
async def media_stream(websocket: WebSocket):
    """WebSocket endpoint carrying one call's Twilio media stream."""
    await session_registry.handle_websocket(websocket)


if __name__ == "__main__":
    import uvicorn

    settings.require_api_key()
    logger.info(f"Server listening on port {settings.port}")
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        ws_ping_interval=5,
        ws_max_size=16777216,  # 16MB - large enough for audio chunks
        ws_ping_timeout=20,
        http="h11",
    )
