"""
Constants and configuration values used throughout the application.

This module defines the wire-level event names of both protocols the relay speaks
(Twilio Media Streams and the OpenAI Realtime API) together with the defaults
that the settings layer falls back to.
"""

# Logger name used throughout the application
LOGGER_NAME = "call_relay"

# Default OpenAI model for Realtime API
DEFAULT_REALTIME_MODEL = "gpt-4o-realtime-preview-2024-10-01"
REALTIME_URL_TEMPLATE = "wss://api.openai.com/v1/realtime?model={model}"
REALTIME_BETA_HEADER = "realtime=v1"

# Session configuration defaults
DEFAULT_VOICE = "alloy"
DEFAULT_TEMPERATURE = 0.8
DEFAULT_MODALITIES = ("text", "audio")
DEFAULT_TURN_DETECTION = "server_vad"
DEFAULT_SYSTEM_MESSAGE = (
    "You are a friendly phone assistant. Greet the caller, find out what they "
    "need, collect their first and last name, and answer their questions "
    "briefly and clearly."
)

# Audio format constants (G.711 mu-law at 8 kHz is what Twilio streams)
AUDIO_FORMAT_G711_ULAW = "g711_ulaw"
AUDIO_FORMAT_G711_ALAW = "g711_alaw"
AUDIO_FORMAT_PCM16 = "pcm16"
SUPPORTED_AUDIO_FORMATS = (AUDIO_FORMAT_G711_ULAW, AUDIO_FORMAT_G711_ALAW, AUDIO_FORMAT_PCM16)

# Handshake timing (seconds)
CONFIG_SEND_DELAY = 1.0
CONNECTION_TIMEOUT = 30

# Upstream WebSocket tuning for low latency
WS_MAX_SIZE = 16 * 1024 * 1024
WS_MAX_QUEUE = 32
WS_PING_INTERVAL = 5

# Twilio Media Streams event names
STREAM_EVENT_CONNECTED = "connected"
STREAM_EVENT_START = "start"
STREAM_EVENT_MEDIA = "media"
STREAM_EVENT_MARK = "mark"
STREAM_EVENT_STOP = "stop"

# OpenAI Realtime client commands
REALTIME_SESSION_UPDATE = "session.update"
REALTIME_INPUT_AUDIO_APPEND = "input_audio_buffer.append"

# OpenAI Realtime server events
REALTIME_SESSION_CREATED = "session.created"
REALTIME_SESSION_UPDATED = "session.updated"
REALTIME_AUDIO_DELTA = "response.audio.delta"
REALTIME_ERROR = "error"

# HTTP surface
MEDIA_STREAM_PATH = "/media-stream"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 5050
DEFAULT_GREETING = (
    "Thank you for calling. Please wait while we connect you to our voice assistant."
)
DEFAULT_PROMPT = "Alright, you may begin! How may we be of service to you today?"

# WebSocket close code sent when the relay is at capacity
WS_CLOSE_TRY_AGAIN_LATER = 1013
