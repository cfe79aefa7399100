"""Global pytest configuration."""

import os

# Settings are loaded at import time, so required values must exist first
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ.setdefault("DLQ_ENABLED", "false")
