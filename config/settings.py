"""
Promotion Engine - Django Settings (Infrastructure Only)
=========================================================
Django hosts the promotion store (catalog rows and usage counters) and
the transaction hooks redemption relies on. The engine itself is plain
Python and does not depend on these settings to evaluate a cart.
"""

import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

# ── Security ──────────────────────────────────────────────────
SECRET_KEY = os.environ.get("PROMOTION_SECRET_KEY", "promotion-dev-key-replace-before-deployment")

DEBUG = os.environ.get("PROMOTION_DEBUG", "1") == "1"

ALLOWED_HOSTS = []

# ── Installed Apps ────────────────────────────────────────────
INSTALLED_APPS = [
    "engines.promotion.store",
]

# ── Database ──────────────────────────────────────────────────
# SQLite for development. Production DB configured separately.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("PROMOTION_DB_PATH", BASE_DIR / "db.sqlite3"),
    }
}

# ── Time ──────────────────────────────────────────────────────
TIME_ZONE = "UTC"
USE_TZ = True

# ── Logging ───────────────────────────────────────────────────
# Engine modules log under the "promotion" namespace
# (promotion.catalog, promotion.stacking, promotion.ledger, promotion.service).
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "plain",
        },
    },
    "loggers": {
        "promotion": {
            "handlers": ["console"],
            "level": os.environ.get("PROMOTION_LOG_LEVEL", "INFO"),
            "propagate": True,
        },
    },
}

# ── Default Primary Key ──────────────────────────────────────
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
