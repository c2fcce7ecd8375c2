"""Runtime settings for the finance dashboard.

Values come from the environment (a local ``.env`` file is loaded first) so
the API server and the Streamlit client share one source of configuration.
"""

import logging
import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# --- AI advisory service ---
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-pro")

# --- HTTP server ---
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 8000))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Seed the in-memory store with the demo user on startup
SEED_DEMO_DATA = os.getenv("SEED_DEMO_DATA", "true").lower() in ("1", "true", "yes")
DEMO_USER_ID = "testuser"

# --- Dashboard ---
CREDIT_SCORE_PLACEHOLDER = 742
RECENT_TRANSACTION_LIMIT = 10
DASHBOARD_INSIGHT_LIMIT = 3
MONTHLY_SPENDING_DAYS = 30
DEFAULT_TREND_DAYS = 30
MAX_TREND_DAYS = 3650
MAX_INSIGHTS = 5

# Budget status tiers (percent of allotment used)
BUDGET_WARNING_THRESHOLD = 80
BUDGET_OVER_THRESHOLD = 100


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for an entry point."""
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
