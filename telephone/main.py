# telephone/main.py
from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.asyncio import Redis

from telephone.domain.common.locks import RoomLocks
from telephone.domain.game.handlers_phase import handle_phase_timeout
from telephone.domain.lifecycle.handlers import sweep_idle_rooms
from telephone.domain.timers import PhaseTimerManager
from telephone.settings import Settings, get_settings
from telephone.store.memory_repo import MemoryRepo
from telephone.store.redis_repo import RedisRepo
from telephone.transport.rooms_api import router as rooms_router
from telephone.transport.ws import router as ws_router
from telephone.transport.ws_manager import WSManager

logger = logging.getLogger(__name__)


async def _sweep_loop(app: FastAPI, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            await sweep_idle_rooms(app)
        except Exception:
            logger.exception("idle room sweep failed")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title=settings.APP_NAME)
    app.state.settings = settings

    allowed_origins = [o.strip() for o in settings.WS_ALLOWED_ORIGINS.split(",") if o.strip()]
    if "null" not in allowed_origins:
        allowed_origins.append("null")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def _startup() -> None:
        app.state.redis = None
        if settings.REDIS_URL:
            r = Redis.from_url(settings.REDIS_URL, decode_responses=False)
            await r.ping()
            app.state.redis = r
            app.state.repo = RedisRepo(r, room_ttl_sec=settings.ROOM_TTL_SEC)
        else:
            app.state.repo = MemoryRepo()

        wsman = WSManager()
        app.state.wsman = wsman
        app.state.locks = RoomLocks()

        async def _on_expire(room_id, phase, round_no) -> None:
            await handle_phase_timeout(app, room_id, phase, round_no)

        app.state.timers = PhaseTimerManager(
            broadcast=wsman.broadcast,
            on_expire=_on_expire,
            tick_sec=settings.TIMER_TICK_SEC,
        )
        app.state.sweeper = asyncio.create_task(_sweep_loop(app, settings.SWEEP_INTERVAL_SEC))
        logger.info("%s started store=%s", settings.APP_NAME, "redis" if app.state.redis else "memory")

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        app.state.timers.stop_all()
        app.state.sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await app.state.sweeper
        await app.state.wsman.close_all()
        r: Optional[Redis] = app.state.redis
        if r is not None:
            await r.close()

    @app.get("/health")
    async def health():
        r: Optional[Redis] = app.state.redis
        if r is None:
            return {"ok": True, "store": "memory"}
        pong = await r.ping()
        return {"ok": True, "store": "redis", "redis": str(pong)}

    app.include_router(ws_router)
    app.include_router(rooms_router)
    return app


app = create_app()
