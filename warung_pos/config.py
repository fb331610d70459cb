from __future__ import annotations

import os
from pathlib import Path

# ---------------- App Info ----------------
APP_NAME = "Warung POS"
APP_VERSION = "1.0"


# ---------------- Paths ----------------
BASE_DIR = Path(__file__).resolve().parent  # .../warung_pos
PROJECT_DIR = BASE_DIR.parent  # project root

DATA_DIR = Path(os.environ.get("POS_DATA_DIR", PROJECT_DIR / "data"))
DB_PATH = DATA_DIR / "session.db"

EXPORTS_DIR = Path(os.environ.get("POS_EXPORTS_DIR", PROJECT_DIR / "exports"))
RECEIPTS_DIR = Path(os.environ.get("POS_RECEIPTS_DIR", PROJECT_DIR / "receipts"))


# ---------------- Backend ----------------
# Every request goes to this host; the path part comes from the gateways.
API_BASE_URL = os.environ.get("POS_BACKEND_URL", "http://localhost:3000").rstrip("/")
REQUEST_TIMEOUT = float(os.environ.get("POS_REQUEST_TIMEOUT", "30"))


# ---------------- Order lifecycle ----------------
# "classic"  -> PENDING / PREPARED / SERVED / CANCELED, waiter limited to PREPARED<->SERVED
# "extended" -> adds COMPLETED after SERVED, waiter may move own orders freely
LIFECYCLE_CLASSIC = "classic"
LIFECYCLE_EXTENDED = "extended"
LIFECYCLE_PROFILE = os.environ.get("POS_LIFECYCLE_PROFILE", LIFECYCLE_CLASSIC).strip().lower()


# ---------------- Display ----------------
OUTLET_DISPLAY_NAME = os.environ.get("POS_OUTLET_NAME", "Warung")
CURRENCY_PREFIX = "Rp"
RECEIPT_WIDTH = 32  # characters on the 58 mm thermal printer


# ---------------- Debug / Logging ----------------
DEBUG = os.environ.get("POS_DEBUG", "").lower() in ("1", "true", "yes")
LOG_LEVEL = os.environ.get("POS_LOG_LEVEL", "DEBUG" if DEBUG else "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
