"""Static configuration for photoscope.

Non-secret settings (channel description, OCR, backoff, vault location,
logging) live in a single JSON file for quick edits without touching Python.
Credentials never go here: they come from a vault, the environment or the
first-run prompts.
"""

import json
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json; a missing file means every default applies."""

    if not os.path.exists(CONFIG_PATH):
        return {}

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _optional_int(value):
    return None if value is None else int(value)


_CONFIG = _load_json_config()

CONFIG = _CONFIG

# Output channel description used when the channel has to be created.
_channel = _CONFIG.get("channel", {})
CHANNEL_ABOUT = str(_channel.get("about", ""))

# OCR gate: messages whose mean confidence is below the threshold are dropped.
_pipeline = _CONFIG.get("pipeline", {})
OCR_LANGUAGE = _pipeline.get("language", "eng")
OCR_MIN_CONFIDENCE = float(_pipeline.get("min_confidence", 10))
# null keeps media downloads unbounded.
MAX_MEDIA_BYTES = _optional_int(_pipeline.get("max_media_bytes"))
TESSERACT_CMD = _pipeline.get("tesseract_cmd")

# Reconnect backoff: 2 ** min(attempt, max_exponent) seconds.
# max_attempts=null retries forever.
_connection = _CONFIG.get("connection", {})
BACKOFF_BASE = float(_connection.get("backoff_base", 2))
BACKOFF_MAX_EXPONENT = int(_connection.get("backoff_max_exponent", 7))
BACKOFF_MAX_ATTEMPTS = _optional_int(_connection.get("max_attempts"))

# Channel provisioning retries use their own, shorter schedule.
PROVISION_BACKOFF_MAX_EXPONENT = int(_channel.get("retry_max_exponent", 5))
PROVISION_MAX_ATTEMPTS = _optional_int(_channel.get("max_attempts"))

# Encrypted profile files: <vault.directory>/<login><vault.suffix>
_vault = _CONFIG.get("vault", {})
VAULT_DIR = _vault.get("directory", ".")
if not os.path.isabs(VAULT_DIR):
    VAULT_DIR = os.path.join(PROJECT_ROOT, VAULT_DIR)
VAULT_SUFFIX = _vault.get("suffix", ".vault")

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
