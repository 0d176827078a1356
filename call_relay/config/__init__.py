"""
Configuration module for the call relay.

Key components:
- constants: wire event names for Twilio Media Streams and the OpenAI Realtime API,
  default model, voice and timing values.
- settings: the immutable process Settings loaded from the environment, and the
  AuthConfigurationError raised when the API credential is missing.
- logging_config: console plus rotating-file logging for the ``call_relay`` logger.

Usage examples:
```python
from call_relay.config.settings import load_settings
from call_relay.config.logging_config import configure_logging

logger = configure_logging()
settings = load_settings()
settings.require_api_key()
```
"""
