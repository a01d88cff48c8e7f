# backend/tireplan/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/tireplan.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///tireplan.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # bcrypt cost factor (tests lower this to the bcrypt minimum of 4)
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Password given to new owners and restored by a super-admin reset
    DEFAULT_OWNER_PASSWORD = os.environ.get("DEFAULT_OWNER_PASSWORD", "1234")

    # Products whose total stock is at or below this are flagged (service items never are)
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "5"))

    # Simulated tax-authority transmission time
    INVOICE_TRANSMIT_DELAY_SECONDS = float(os.environ.get("INVOICE_TRANSMIT_DELAY_SECONDS", "2.0"))

    SEED_DEMO_DATA = _env_bool("SEED_DEMO_DATA", False)

    # IANA zone that business days (the sales ?date= filter, reports) are counted in
    BUSINESS_TIMEZONE = os.environ.get("BUSINESS_TIMEZONE", "Asia/Seoul")
