"""
Web API endpoints for simulator control.
"""

import logging
from typing import Optional
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from scale_gateway.simulator.scale_server import ScaleSimulator


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/simulator", tags=["simulator"])


def get_simulator(request: Request) -> ScaleSimulator:
    """Get simulator from app.state."""
    simulator = getattr(request.app.state, 'simulator', None)
    if simulator is None:
        raise HTTPException(status_code=503, detail="Simulator not available")
    return simulator


class SimulatorStatus(BaseModel):
    """Simulator status response."""
    host: str
    port: int
    running: bool
    gross_kg: float
    tare_kg: float
    preset_tare_grams: Optional[int]
    status_code: int
    sealed: bool
    flags: str


class LoadRequest(BaseModel):
    """Place a load on the simulated platform."""
    gross_kg: float = Field(..., ge=-999.0, le=9999.0, description="Gross weight in kg")


class FaultRequest(BaseModel):
    """Change simulated device conditions (unset fields are left unchanged)."""
    sealed: Optional[bool] = None
    status_code: Optional[int] = Field(None, ge=0, le=0xFF)
    split_replies: Optional[bool] = None
    inject_checksum_error: Optional[bool] = None
    response_latency_ms: Optional[int] = Field(None, ge=0, le=5000)


def _status(simulator: ScaleSimulator) -> SimulatorStatus:
    return SimulatorStatus(
        host=simulator.host,
        port=simulator.port,
        running=simulator.running,
        gross_kg=simulator.gross_kg,
        tare_kg=simulator.effective_tare_kg,
        preset_tare_grams=simulator.preset_grams,
        status_code=simulator.status_code,
        sealed=simulator.sealed,
        flags=f"{simulator.status_flags():03X}",
    )


@router.get("/status", response_model=SimulatorStatus)
async def get_status(request: Request):
    """Get current simulator status."""
    return _status(get_simulator(request))


@router.put("/load", response_model=SimulatorStatus)
async def set_load(request: Request, body: LoadRequest):
    """Set the gross weight on the simulated platform."""
    simulator = get_simulator(request)
    simulator.gross_kg = body.gross_kg
    logger.info(f"[Web API] Simulator load set to {body.gross_kg:.3f} kg")
    return _status(simulator)


@router.put("/faults", response_model=SimulatorStatus)
async def set_faults(request: Request, body: FaultRequest):
    """Toggle sealing switch, status code and reply fault injection."""
    simulator = get_simulator(request)

    if body.sealed is not None:
        simulator.sealed = body.sealed
    if body.status_code is not None:
        simulator.status_code = body.status_code
    if body.split_replies is not None:
        simulator.config.split_replies = body.split_replies
    if body.inject_checksum_error is not None:
        simulator.config.inject_checksum_error = body.inject_checksum_error
    if body.response_latency_ms is not None:
        simulator.config.response_latency_ms = body.response_latency_ms

    logger.info(f"[Web API] Simulator faults updated: {body.model_dump(exclude_none=True)}")
    return _status(simulator)
