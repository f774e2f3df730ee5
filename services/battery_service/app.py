from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from libs.config import get_setting
from libs.log import setup_logging
from .core.runtime import BatteryRuntime, build_runtime
from .routers.http import router as http_router
from .routers.ws import router as ws_router


def create_app(runtime: Optional[BatteryRuntime] = None) -> FastAPI:
    setup_logging(get_setting("log.level", "INFO"))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        rt = runtime or build_runtime()
        await rt.startup(get_setting("vehicle"))
        app.state.runtime = rt
        try:
            yield
        finally:
            await rt.shutdown()

    app = FastAPI(title="battery_service", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(get_setting("service.cors_origins", ["*"])),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(http_router)
    app.include_router(ws_router)
    return app


app = create_app()
