# backend/backoffice/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/backoffice.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///backoffice.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Financial engine knobs (amounts are in the smallest currency unit)
    DEFAULT_DELIVERY_FEE = int(os.environ.get("DEFAULT_DELIVERY_FEE", "5000"))
    MANAGER_SENTINEL = os.environ.get("MANAGER_SENTINEL", "manager")
    EMPLOYEE_DUES_CATEGORY = os.environ.get("EMPLOYEE_DUES_CATEGORY", "مستحقات الموظفين")
    GOODS_PURCHASE_CATEGORY = os.environ.get("GOODS_PURCHASE_CATEGORY", "شراء بضاعة")
    SYSTEM_EXPENSE_TYPE = os.environ.get("SYSTEM_EXPENSE_TYPE", "system")

    # Read cache used by the records API
    REQUEST_CACHE_TTL_SECONDS = float(os.environ.get("REQUEST_CACHE_TTL_SECONDS", "300"))

    # The unified calculator is callable from any origin
    CORS_ALLOW_ORIGIN = os.environ.get("CORS_ALLOW_ORIGIN", "*")
