"""Global pytest configuration."""

import os

# Tests never talk to OpenAI; force the deterministic stub before any imports
os.environ["OPENAI_API_KEY"] = ""
