# telephone/settings.py
from __future__ import annotations

from pydantic import BaseModel
import os


class Settings(BaseModel):
    APP_NAME: str = "telephone-server"

    # Redis (empty -> in-memory store)
    REDIS_URL: str = ""
    ROOM_TTL_SEC: int = 1800

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Dev
    LOG_LEVEL: str = "INFO"

    # WebSocket origin policy (comma-separated)
    WS_ALLOWED_ORIGINS: str = "http://localhost:5173,http://127.0.0.1:5173,null"
    WS_ALLOW_LAN_ORIGINS: bool = True

    # Game
    MIN_PLAYERS: int = 4
    DEFAULT_MAX_PLAYERS: int = 12
    DEFAULT_TOTAL_ROUNDS: int = 6
    WRITING_TIME_SEC: int = 60
    TIMER_TICK_SEC: float = 1.0

    # Housekeeping
    ROOM_IDLE_SEC: int = 600
    SWEEP_INTERVAL_SEC: int = 60
    ROOM_CODE_ATTEMPTS: int = 10


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "y", "on")


def get_settings() -> Settings:
    return Settings(
        APP_NAME=os.getenv("APP_NAME", "telephone-server"),
        REDIS_URL=os.getenv("REDIS_URL", ""),
        ROOM_TTL_SEC=int(os.getenv("ROOM_TTL_SEC", "1800")),
        HOST=os.getenv("HOST", "0.0.0.0"),
        PORT=int(os.getenv("PORT", "8000")),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),

        WS_ALLOWED_ORIGINS=os.getenv(
            "WS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,null",
        ),
        WS_ALLOW_LAN_ORIGINS=_env_bool("WS_ALLOW_LAN_ORIGINS", "true"),

        MIN_PLAYERS=int(os.getenv("MIN_PLAYERS", "4")),
        DEFAULT_MAX_PLAYERS=int(os.getenv("DEFAULT_MAX_PLAYERS", "12")),
        DEFAULT_TOTAL_ROUNDS=int(os.getenv("DEFAULT_TOTAL_ROUNDS", "6")),
        WRITING_TIME_SEC=int(os.getenv("WRITING_TIME_SEC", "60")),
        TIMER_TICK_SEC=float(os.getenv("TIMER_TICK_SEC", "1.0")),

        ROOM_IDLE_SEC=int(os.getenv("ROOM_IDLE_SEC", "600")),
        SWEEP_INTERVAL_SEC=int(os.getenv("SWEEP_INTERVAL_SEC", "60")),
        ROOM_CODE_ATTEMPTS=int(os.getenv("ROOM_CODE_ATTEMPTS", "10")),
    )
