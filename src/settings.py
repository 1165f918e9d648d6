"""Static configuration for chatrecs.

All user-editable settings (anchors, batching, enrichment, logging) live in a
single JSON file for quick edits without touching Python. Secrets are read
from the environment (or a .env file) and never stored in config.json.
"""

import json
import os

from dotenv import load_dotenv

from core.config import Anchor, EnrichmentConfig, PipelineConfig, TokenCosts

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.environ.get("CHATRECS_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _build_anchors(raw_anchors: list[dict]) -> tuple[Anchor, ...]:
    """Keep anchor order; labels are assigned positionally."""

    anchors = []
    for entry in raw_anchors:
        timestamp = entry.get("timestamp")
        if not timestamp:
            continue
        anchors.append(Anchor(timestamp=str(timestamp), label=str(entry.get("label", ""))))
    return tuple(anchors)


load_dotenv()

_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Where to store the SQLite database (relative paths are under the project root).
DB_PATH = _CONFIG.get("database_path", "chatrecs.db")
if not os.path.isabs(DB_PATH):
    DB_PATH = os.path.join(PROJECT_ROOT, DB_PATH)

# Anchors fingerprint the expected export and anonymize its senders.
ANCHORS = _build_anchors(_CONFIG.get("anchors", []))
BATCH_SIZE = int(_CONFIG.get("batch_size", 50))
TIMESTAMP_TOLERANCE_SECONDS = float(_CONFIG.get("timestamp_tolerance_seconds", 2))

PIPELINE = PipelineConfig(
    anchors=ANCHORS,
    batch_size=BATCH_SIZE,
    tolerance_seconds=TIMESTAMP_TOLERANCE_SECONDS,
)

# Enrichment bounds outbound fan-out and how long one lookup may stall a batch.
_enrichment = _CONFIG.get("enrichment", {})
ENRICHMENT = EnrichmentConfig(
    concurrency=int(_enrichment.get("concurrency", 6)),
    timeout_seconds=float(_enrichment.get("timeout_seconds", 4.0)),
)

# Uploads larger than this are rejected before decompression.
MAX_UPLOAD_BYTES = int(_CONFIG.get("upload", {}).get("max_bytes", 1024 * 1024))

OPENAI_MODEL = _CONFIG.get("openai", {}).get("model", "gpt-5-mini")

_costs = _CONFIG.get("token_costs", {})
TOKEN_COSTS = TokenCosts(
    input_per_million=float(_costs.get("input_per_million", 0.25)),
    output_per_million=float(_costs.get("output_per_million", 2.0)),
)

# Secrets.
CHAT_HASH = os.getenv("CHAT_HASH", "")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
TMDB_API_KEY = os.getenv("TMDB_API_KEY", "")

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
