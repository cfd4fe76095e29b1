import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# ======================================================
# Load .env correctly in BOTH:
# - normal dev run (uvicorn main:app)
# - frozen onefile EXE (run_server.exe)
# ======================================================

if getattr(sys, "frozen", False):
    BASE_DIR = Path(sys.executable).parent
else:
    # This file is: <project_root>/app/core/config.py
    BASE_DIR = Path(__file__).resolve().parents[2]

load_dotenv(dotenv_path=BASE_DIR / ".env")


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "" or raw.strip().lower() == "none":
        return default
    return int(raw)


def build_database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    db_host = os.getenv("DB_HOST")
    if not db_host:
        return f"sqlite:///{BASE_DIR / 'staff_loans.db'}"

    db_port = os.getenv("DB_PORT")
    # Fix the None / empty / "None" port issue
    if not db_port or str(db_port).lower() == "none":
        db_port = "5432"

    db_name = os.getenv("DB_NAME", "staff_loans")
    db_user = os.getenv("DB_USER", "postgres")
    db_pass = os.getenv("DB_PASS", "")

    return f"postgresql+psycopg2://{db_user}:{db_pass}@{db_host}:{db_port}/{db_name}"


# ---------------------
# Database
# ---------------------
DATABASE_URL = build_database_url()
DB_ECHO = _env_bool("DB_ECHO", False)
DB_POOL_SIZE = _env_int("DB_POOL_SIZE", 5)
DB_MAX_OVERFLOW = _env_int("DB_MAX_OVERFLOW", 10)

# ---------------------
# Logging
# ---------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "standard")

# ---------------------
# Ledger
# ---------------------
# how many times a payment is re-read and re-planned after a version conflict
PAYMENT_CONFLICT_RETRIES = _env_int("PAYMENT_CONFLICT_RETRIES", 3)

# ---------------------
# HTTP
# ---------------------
CORS_ORIGINS = [
    o.strip()
    for o in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000",
    ).split(",")
    if o.strip()
]
HOST = os.getenv("HOST", "0.0.0.0")
PORT = _env_int("PORT", 5001)
