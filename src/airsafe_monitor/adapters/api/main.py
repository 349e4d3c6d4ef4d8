from contextlib import asynccontextmanager

from fastapi import FastAPI

from airsafe_monitor.adapters.api.routes import router
from airsafe_monitor.service import AirQualityMonitor


def create_app(monitor: AirQualityMonitor, manage_lifecycle: bool = True) -> FastAPI:
    """HTTP surface over a monitor; starts and stops it with the app when asked to."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if manage_lifecycle:
            monitor.start()
        yield
        if manage_lifecycle:
            monitor.stop()

    app = FastAPI(title="AirSafe Monitor", lifespan=lifespan)
    app.state.monitor = monitor
    app.include_router(router)
    return app
