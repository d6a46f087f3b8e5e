"""
FastAPI application factory.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from scale_gateway import __version__
from scale_gateway.api.error_mapper import map_exception_to_http
from scale_gateway.api.routes import router as scale_router
from scale_gateway.api.routes import logs_router
from scale_gateway.config.models import AppConfig, DeviceConfig
from scale_gateway.directory.interface import DeviceDirectory
from scale_gateway.directory.static import StaticDeviceDirectory
from scale_gateway.scale.controller import ScaleController
from scale_gateway.simulator.scale_server import ScaleSimulator
from scale_gateway.simulator.web_api import router as simulator_router
from scale_gateway.utils.exceptions import ScaleGatewayException


logger = logging.getLogger(__name__)


def _default_directory(config: AppConfig) -> DeviceDirectory:
    """Directory from config.json, plus the simulator when it is enabled."""
    devices = list(config.devices)
    sim = config.simulator

    if sim.enabled:
        if sim.port == 0:
            logger.warning("Simulator port is 0; add a device entry once the bound port is known")
        elif not any(d.host == sim.host and d.port == sim.port for d in devices):
            devices.append(DeviceConfig(
                id=max((d.id for d in devices), default=0) + 1,
                name="simulator",
                host=sim.host,
                port=sim.port,
                description="Simulated scale",
            ))

    return StaticDeviceDirectory(devices)


def create_app(
    config: AppConfig,
    directory: Optional[DeviceDirectory] = None,
    controller: Optional[ScaleController] = None,
) -> FastAPI:
    """
    Create FastAPI application instance.

    Args:
        config: Application configuration.
        directory: Device directory (defaults to the configured devices).
        controller: Scale controller (defaults to one built from config.session).

    Returns:
        Configured FastAPI app.
    """
    simulator = ScaleSimulator(config.simulator) if config.simulator.enabled else None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if simulator is not None:
            await simulator.start()
        try:
            yield
        finally:
            if simulator is not None:
                await simulator.stop()

    app = FastAPI(
        title="Scale Gateway",
        description="HTTP gateway for HF2211 networked weighing scales",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(ScaleGatewayException)
    async def gateway_exception_handler(request: Request, exc: ScaleGatewayException):
        """Return gateway errors in the uniform error payload."""
        status_code, message = map_exception_to_http(exc)
        logger.warning(f"{request.method} {request.url.path} -> {status_code}: {message}")
        return JSONResponse(status_code=status_code, content={"type": "error", "error": message})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Catch all unhandled exceptions."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        status_code, message = map_exception_to_http(exc)
        return JSONResponse(status_code=status_code, content={"type": "error", "error": message})

    app.state.config = config
    app.state.directory = directory or _default_directory(config)
    app.state.controller = controller or ScaleController(config.session)
    app.state.simulator = simulator

    app.include_router(scale_router)
    app.include_router(logs_router)
    if simulator is not None:
        app.include_router(simulator_router)

    return app
