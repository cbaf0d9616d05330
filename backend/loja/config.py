from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/loja.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///loja.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Installment plans accept 1..MAX_INSTALLMENTS monthly payments
    MAX_INSTALLMENTS = 12

    # Dashboard window for "due soon" installments
    UPCOMING_INSTALLMENT_DAYS = 7

    # Browser origins allowed to call the API during development
    CORS_ORIGINS = (
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    )
