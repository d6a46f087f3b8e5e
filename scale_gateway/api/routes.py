"""
HTTP endpoints for scale operations.

Device operations are addressed by the scale's IP (or numeric device id) and
return the session outcome payload unchanged.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from scale_gateway.api.error_mapper import outcome_status_code
from scale_gateway.directory.interface import DeviceAddress, DeviceDirectory
from scale_gateway.protocol.logger import get_protocol_logger
from scale_gateway.protocol.outcomes import SessionOutcome
from scale_gateway.scale.controller import ScaleController
from scale_gateway.utils.exceptions import DeviceNotFoundError, MissingParameterError


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["scale"])
logs_router = APIRouter(prefix="/api/protocol", tags=["protocol"])


def get_directory(request: Request) -> DeviceDirectory:
    """Dependency to get the device directory from app.state."""
    directory = getattr(request.app.state, 'directory', None)
    if directory is None:
        raise RuntimeError("Device directory not initialized")
    return directory


def get_controller(request: Request) -> ScaleController:
    """Dependency to get the scale controller from app.state."""
    controller = getattr(request.app.state, 'controller', None)
    if controller is None:
        raise RuntimeError("Scale controller not initialized")
    return controller


def resolve_address(ip: str, directory: DeviceDirectory) -> DeviceAddress:
    """
    Resolve a path parameter to a scale address.

    Raises:
        DeviceNotFoundError: If no configured device matches.
    """
    address = directory.lookup(ip)
    if address is None:
        logger.info(f"Device with IP {ip.strip()} not found in directory")
        raise DeviceNotFoundError("Device with specified IP not found")
    return address


def outcome_response(outcome: SessionOutcome) -> JSONResponse:
    return JSONResponse(status_code=outcome_status_code(outcome), content=outcome.to_dict())


@router.get("/health")
async def health_check():
    """Simple health check endpoint (no dependencies)."""
    return {"status": "ok", "message": "Server is running"}


@router.get("/devices")
async def list_devices(directory: DeviceDirectory = Depends(get_directory)):
    """List configured scales."""
    return [device.model_dump() for device in directory.list_devices()]


@router.get("/devices/{identifier}")
async def get_device(identifier: str, directory: DeviceDirectory = Depends(get_directory)):
    """Get one configured scale by id or IP."""
    device = directory.get_device(identifier)
    if device is None:
        raise DeviceNotFoundError("Device not found")
    return device.model_dump()


@router.get("/devices/{ip}/weight")
async def read_weight(
    ip: str,
    directory: DeviceDirectory = Depends(get_directory),
    controller: ScaleController = Depends(get_controller),
):
    """Read gross, tare and net weight."""
    address = resolve_address(ip, directory)
    logger.debug(f"Processing weight request for {address}")
    return outcome_response(await controller.read_weight(address))


@router.get("/devices/{ip}/tare")
async def execute_tare(
    ip: str,
    directory: DeviceDirectory = Depends(get_directory),
    controller: ScaleController = Depends(get_controller),
):
    """Execute tare (followed by a preset tare clear when it succeeds)."""
    address = resolve_address(ip, directory)
    return outcome_response(await controller.execute_tare(address))


@router.get("/devices/{ip}/status")
async def read_status(
    ip: str,
    directory: DeviceDirectory = Depends(get_directory),
    controller: ScaleController = Depends(get_controller),
):
    """Read the device status code."""
    address = resolve_address(ip, directory)
    return outcome_response(await controller.read_status(address))


@router.get("/devices/{ip}/clearPreset")
async def clear_preset_tare(
    ip: str,
    directory: DeviceDirectory = Depends(get_directory),
    controller: ScaleController = Depends(get_controller),
):
    """Clear the stored preset tare."""
    address = resolve_address(ip, directory)
    return outcome_response(await controller.clear_preset_tare(address))


@router.get("/devices/{ip}/presetTare")
async def set_preset_tare(
    ip: str,
    value: Optional[str] = Query(None, description="Preset tare in kg (0.0 - 30.0)"),
    directory: DeviceDirectory = Depends(get_directory),
    controller: ScaleController = Depends(get_controller),
):
    """Store a preset tare value."""
    address = resolve_address(ip, directory)
    if not value:
        raise MissingParameterError("Value query parameter required")
    return outcome_response(await controller.set_preset_tare(address, value))


@logs_router.get("/logs")
async def get_protocol_logs(limit: int = Query(100, ge=1, le=500)):
    """
    Get protocol message logs.

    Args:
        limit: Maximum number of messages to return (default 100).

    Returns:
        List of protocol messages with stats.
    """
    protocol_logger = get_protocol_logger()
    return {
        "messages": protocol_logger.get_messages(limit=limit),
        "stats": protocol_logger.get_stats()
    }


@logs_router.post("/logs/clear")
async def clear_protocol_logs():
    """Clear all protocol message logs."""
    get_protocol_logger().clear()
    logger.info("Protocol logs cleared")
    return {"status": "ok", "message": "Logs cleared"}


@logs_router.put("/logs/enabled")
async def set_logs_enabled(enabled: bool = True):
    """Enable or disable protocol logging."""
    get_protocol_logger().enabled = enabled
    logger.info(f"Protocol logging {'enabled' if enabled else 'disabled'}")
    return {"status": "ok", "enabled": enabled}
