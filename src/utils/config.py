# runtime settings, read from the environment once at import time
import os
from dataclasses import dataclass, field
from typing import Optional


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


@dataclass
class Settings:
    """
    Application settings.

    Fields:
      - db_path: sqlite file backing every store
      - simulated_latency: seconds each store call waits before touching the db
      - profit_margin: share of an order total booked as profit on the dashboard
      - delivery_days: expected delivery offset for new orders
      - origin_location: current_location of a freshly placed order
      - otp_resend_cooldown: seconds the login screen blocks "Resend code"
      - ai_model: model name passed to the AI gateway
      - log_file: if set, logs go to this file instead of the terminal
    """

    db_path: str = field(
        default_factory=lambda: os.getenv("ARTISAN_DB_PATH", "data/artisan.sqlite")
    )
    simulated_latency: float = field(
        default_factory=lambda: _env_float("ARTISAN_LATENCY", 0.2)
    )
    profit_margin: float = field(
        default_factory=lambda: _env_float("ARTISAN_PROFIT_MARGIN", 0.6)
    )
    delivery_days: int = field(
        default_factory=lambda: _env_int("ARTISAN_DELIVERY_DAYS", 5)
    )
    origin_location: str = field(
        default_factory=lambda: os.getenv(
            "ARTISAN_ORIGIN_LOCATION", "Warehouse, Willow Creek"
        )
    )
    otp_resend_cooldown: int = field(
        default_factory=lambda: _env_int("ARTISAN_OTP_COOLDOWN", 30)
    )
    ai_model: str = field(
        default_factory=lambda: os.getenv("ARTISAN_AI_MODEL", "gpt-4o-mini")
    )
    log_file: Optional[str] = field(
        default_factory=lambda: os.getenv("ARTISAN_LOG_FILE") or None
    )
    debug: bool = field(default_factory=lambda: bool(os.getenv("DEBUG")))


settings = Settings()
