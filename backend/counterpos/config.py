# backend/counterpos/config.py
from __future__ import annotations
import os


def _csv(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/counterpos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///counterpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Kiosk carts expire a fixed time after creation (checked lazily on access)
    KIOSK_SESSION_TTL_MINUTES = int(os.environ.get("KIOSK_SESSION_TTL_MINUTES", "30"))
    KIOSK_SELLABLE_CATEGORIES = _csv(os.environ.get("KIOSK_SELLABLE_CATEGORIES", "beverage,food"))
    KIOSK_DEFAULT_CUSTOMER_NAME = os.environ.get("KIOSK_DEFAULT_CUSTOMER_NAME", "Kiosk Customer")

    # POS-000001, KIOSK-000001
    ORDER_NUMBER_PAD = int(os.environ.get("ORDER_NUMBER_PAD", "6"))

    DEFAULT_LOW_STOCK_THRESHOLD = int(os.environ.get("DEFAULT_LOW_STOCK_THRESHOLD", "10"))
