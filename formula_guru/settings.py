# formula_guru/settings.py

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

logger = logging.getLogger("formula_guru")

# --- Configuration ---
OPENAI_MODEL        = os.getenv("OPENAI_MODEL", "gpt-4o")
OPENAI_TEMPERATURE  = float(os.getenv("OPENAI_TEMPERATURE", "0.25"))
LLM_TIMEOUT         = float(os.getenv("LLM_TIMEOUT", "120"))

UPLOAD_DIR          = os.getenv("UPLOAD_DIR", "tmp/")
PORT                = int(os.getenv("PORT", "3000"))

DEFAULT_BRAND_RULES_PATH = Path(__file__).resolve().parent / "brand_rules.jsonc"
BRAND_RULES_PATH    = os.getenv("BRAND_RULES_PATH") or str(DEFAULT_BRAND_RULES_PATH)


def get_openai_api_key() -> str | None:
    # read per call so a key exported after import is still picked up
    return os.getenv("OPENAI_API_KEY") or None
