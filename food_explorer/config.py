from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[1]  # .../food_explorer repo root
load_dotenv(dotenv_path=ROOT_DIR / ".env")


def _get_env(*keys: str, default: str | None = None) -> str | None:
    for k in keys:
        v = os.getenv(k)
        if v is not None and str(v).strip() != "":
            return v.strip()
    return default


def _get_int(*keys: str, default: int | None = None) -> int | None:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return int(v)


def _get_float(*keys: str, default: float) -> float:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return float(v)


def _get_path(*keys: str, default: str) -> str:
    v = _get_env(*keys, default=default)
    return str(v)


@dataclass(frozen=True)
class Settings:
    bot_token: str
    admin_id: int
    db_path: str
    export_dir: str
    catalog_base_url: str
    catalog_page_size: int
    catalog_timeout: float
    search_debounce_ms: int
    currency: str
    decimals: int
    log_level: str


settings = Settings(
    bot_token=_get_env("BOT_TOKEN", "TELEGRAM_BOT_TOKEN", default="") or "",
    admin_id=_get_int("ADMIN_ID", "ADMIN_TG_ID", "OWNER_ID", default=0) or 0,
    db_path=_get_path("DB_PATH", "DATABASE_PATH", default=str(ROOT_DIR / "data" / "food_explorer.db")),
    export_dir=_get_path("EXPORT_DIR", default=str(ROOT_DIR / "exports")),
    catalog_base_url=_get_env("CATALOG_BASE_URL", "OFF_BASE_URL", default="https://world.openfoodfacts.org")
    or "https://world.openfoodfacts.org",
    catalog_page_size=_get_int("CATALOG_PAGE_SIZE", "PAGE_SIZE", default=24) or 24,
    catalog_timeout=_get_float("CATALOG_TIMEOUT", default=15.0),
    search_debounce_ms=_get_int("SEARCH_DEBOUNCE_MS", default=500) or 500,
    currency=_get_env("CURRENCY", default="INR") or "INR",
    decimals=_get_int("DECIMALS", default=2) or 2,
    log_level=(_get_env("LOG_LEVEL", default="INFO") or "INFO").upper(),
)


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def require_bot_settings() -> None:
    # the web app runs without a bot, so credentials are only checked on bot start
    if not settings.bot_token:
        raise RuntimeError("BOT_TOKEN is empty. Set BOT_TOKEN in .env")
    if not settings.admin_id:
        raise RuntimeError("ADMIN_ID is empty. Set ADMIN_ID (or ADMIN_TG_ID) in .env")
