import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from a .env file
load_dotenv()


class Config:
    """Settings read from the environment."""
    ANTHROPIC_API_KEY = os.environ.get("ANTHROPIC_API_KEY")
    MODEL_NAME = os.environ.get("LC_MODEL", "claude-sonnet-4-5")
    MAX_TOKENS = int(os.environ.get("LC_MAX_TOKENS", 3000))

    DB_PATH = os.environ.get("LC_DB_PATH", str(Path.home() / ".learning_companion" / "state.db"))
    LOG_LEVEL = os.environ.get("LC_LOG_LEVEL", "WARNING").upper()

    # Document text beyond this is not sent to the summary prompt
    MAX_DOCUMENT_CHARS = int(os.environ.get("LC_MAX_DOCUMENT_CHARS", 15000))
