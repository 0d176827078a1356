"""
Call Relay - Twilio Media Streams to OpenAI Realtime API Bridge

This application answers phone calls through Twilio and relays the call's audio
to OpenAI's Realtime API, so a speech-to-speech model can hold the conversation.
For every call it owns two WebSocket connections and translates between the two
protocols in both directions with no buffering.

Architecture Overview:
- FastAPI server answering Twilio's call webhook with TwiML and accepting the
  resulting media stream WebSocket
- One OpenAI Realtime connection per call, configured once with voice,
  instructions and G.711 mu-law audio in both directions
- A per-call state machine that forwards caller audio upstream and synthesized
  audio downstream, tagged with the call's stream identifier

Key Components:
- bot: the upstream client, the telephony connection and the CallSession relay
- config: constants, environment settings and logging setup
- handlers: TwiML voice-prompt generation
- models: pydantic models for both wire protocols
- session_registry: accepts media streams and tracks active call sessions

Getting Started:
1. Set up environment variables (or a .env file):
   - OPENAI_API_KEY: Your OpenAI API key (required)
   - PORT: Port to run the server on (default 5050)
   - HOST: Host to bind the server to (default 0.0.0.0)
   - LOG_LEVEL: Logging level (default INFO)

2. Start the server:
   ```bash
   python run.py
   ```

3. Point the Twilio phone number's voice webhook at
   https://your-server/incoming-call
"""
