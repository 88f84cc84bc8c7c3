from apscheduler.schedulers.asyncio import AsyncIOScheduler
import logging
from datetime import timedelta
from fastapi import FastAPI
from contextlib import asynccontextmanager
import httpx
from starlette.middleware.cors import CORSMiddleware

from aviator_predictor.config_store import PromoConfigStore
from aviator_predictor.create_redis_client import create_redis_client
from aviator_predictor.load_secrets import api_timeout, session_idle_hours
from aviator_predictor.manager import PredictorController
from aviator_predictor.reveal_scheduler import RevealScheduler
from aviator_predictor.round_engine import RoundEngine
from aviator_predictor.routers import admin, player, rounds
from aviator_predictor.services.gateway import (
    AffiliateLinkProvider,
    UsageTracker,
    VerificationGateway,
)
from aviator_predictor.session_gate import SessionGate

logging.basicConfig(level=logging.INFO)
logging.getLogger("apscheduler").setLevel(logging.WARNING)


def build_controller(
    http_client: httpx.AsyncClient, scheduler: AsyncIOScheduler, redis
) -> PredictorController:
    return PredictorController(
        session_gate=SessionGate(VerificationGateway(http_client)),
        round_engine=RoundEngine(UsageTracker(http_client), RevealScheduler(scheduler)),
        config_store=PromoConfigStore(redis),
        link_provider=AffiliateLinkProvider(http_client),
    )


def create_app(controller: PredictorController | None = None) -> FastAPI:
    """Build the application.

    When a controller is passed it is used as is (tests); otherwise the
    lifespan builds one from the environment.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler = AsyncIOScheduler()
        http_client = None
        redis = None
        if getattr(app.state, "controller", None) is None:
            http_client = httpx.AsyncClient(timeout=api_timeout)
            redis = create_redis_client()
            app.state.controller = build_controller(http_client, scheduler, redis)

        # Drop sessions nobody has used for a while
        scheduler.add_job(
            app.state.controller.sweep_idle_sessions,
            "interval",
            hours=1,
            args=(timedelta(hours=session_idle_hours),),
        )
        scheduler.start()
        logging.info("Start Server")
        try:
            yield
        finally:
            app.state.controller.shutdown()
            scheduler.shutdown(wait=False)
            if http_client is not None:
                await http_client.aclose()
            if redis is not None:
                await redis.aclose()
            logging.info("Stop Server")

    app = FastAPI(lifespan=lifespan)
    app.state.controller = controller
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    app.include_router(player.player_router)
    app.include_router(rounds.round_router)
    app.include_router(admin.admin_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("aviator_predictor.main:app", host="0.0.0.0", port=8080)
