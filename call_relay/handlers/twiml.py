"""
Voice-prompt generation for inbound calls.

Twilio fetches these instructions when a call arrives: greet the caller, pause,
then connect the call's audio to the relay's media stream WebSocket.
"""

from twilio.twiml.voice_response import Connect, VoiceResponse

from call_relay.config.constants import DEFAULT_GREETING, DEFAULT_PROMPT, MEDIA_STREAM_PATH


def media_stream_url(host: str) -> str:
    """WebSocket URL Twilio should stream the call's audio to."""
    return f"wss://{host}{MEDIA_STREAM_PATH}"


def build_connect_twiml(host: str, greeting: str = DEFAULT_GREETING,
                        prompt: str = DEFAULT_PROMPT) -> str:
    """
    Build the TwiML answering an inbound call.

    Args:
        host: Public host (and port, if any) the relay is reachable on
        greeting: Spoken before the media stream is connected
        prompt: Spoken right before the caller may start talking

    Returns:
        str: The TwiML document
    """
    response = VoiceResponse()
    response.say(greeting)
    response.pause(length=1)
    response.say(prompt)
    connect = Connect()
    connect.stream(url=media_stream_url(host))
    response.append(connect)
    return str(response)
