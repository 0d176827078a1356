"""
Handlers module for the telephony-facing HTTP surface.

Key components:
- twiml: builds the TwiML returned to Twilio for an inbound call, which greets
  the caller and connects the call audio to the relay's ``/media-stream``
  WebSocket.
"""
