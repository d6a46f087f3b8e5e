# tests/test_controller.py

import pytest
import pytest_asyncio

from scale_gateway.config.models import SessionConfig, SimulatorConfig
from scale_gateway.directory.interface import DeviceAddress
from scale_gateway.protocol.outcomes import ErrorReason
from scale_gateway.scale.controller import ScaleController
from scale_gateway.simulator.scale_server import ScaleSimulator


@pytest.fixture
def controller():
    return ScaleController(SessionConfig(timeout_ms=1000))


@pytest_asyncio.fixture
async def simulator():
    sim = ScaleSimulator(SimulatorConfig(enabled=True, port=0, gross_kg=7.5))
    await sim.start()
    yield sim
    await sim.stop()


def address_of(sim: ScaleSimulator) -> DeviceAddress:
    return DeviceAddress(host=sim.host, port=sim.port)


@pytest.mark.asyncio
async def test_read_weight(controller, simulator):
    outcome = await controller.read_weight(address_of(simulator))

    assert outcome.type == "weight"
    assert outcome.weight == 7.5
    assert outcome.lrc_valid is True
    assert outcome.status_flags.stable is True


@pytest.mark.asyncio
async def test_read_status(controller, simulator):
    simulator.status_code = 0x03
    outcome = await controller.read_status(address_of(simulator))

    assert outcome.type == "status"
    assert outcome.status.code == 0x03
    assert outcome.status.description == "Load cell signal out of range"


@pytest.mark.asyncio
async def test_preset_tare_then_weight(controller, simulator):
    address = address_of(simulator)

    outcome = await controller.set_preset_tare(address, "2.5")
    assert outcome.type == "presetTare"
    assert outcome.success is True
    assert simulator.preset_grams == 2500

    weight = await controller.read_weight(address)
    assert weight.weight == 5.0
    assert weight.status_flags.preset_tare is True
    assert weight.status_flags.tare_mode == "preset"


@pytest.mark.asyncio
async def test_setting_same_preset_twice(controller, simulator):
    address = address_of(simulator)
    await controller.set_preset_tare(address, 1.0)
    outcome = await controller.set_preset_tare(address, 1.0)

    assert outcome.success is False
    assert outcome.message == "presetTare already set/clear or firmware quirk"


@pytest.mark.asyncio
async def test_tare_runs_chained_clear(controller, simulator):
    address = address_of(simulator)
    await controller.set_preset_tare(address, 1.0)

    outcome = await controller.execute_tare(address)

    assert outcome.type == "clearPreset"
    assert outcome.success is True
    assert simulator.preset_grams is None
    assert simulator.tare_kg == 7.5
    assert len(simulator.frames_received) == 3


@pytest.mark.asyncio
async def test_tare_on_sealed_scale(controller, simulator):
    simulator.sealed = True
    outcome = await controller.execute_tare(address_of(simulator))

    assert outcome.type == "tare"
    assert outcome.success is False
    assert len(simulator.frames_received) == 1


@pytest.mark.asyncio
async def test_clear_preset_when_none_stored(controller, simulator):
    outcome = await controller.clear_preset_tare(address_of(simulator))

    assert outcome.type == "clearPreset"
    assert outcome.success is False


@pytest.mark.asyncio
async def test_split_replies_are_reassembled(controller, simulator):
    simulator.config.split_replies = True
    outcome = await controller.read_weight(address_of(simulator))
    assert outcome.weight == 7.5


@pytest.mark.asyncio
async def test_injected_checksum_error(controller, simulator):
    simulator.config.inject_checksum_error = True
    outcome = await controller.read_weight(address_of(simulator))

    assert outcome.type == "weight"
    assert outcome.lrc_valid is False


@pytest.mark.asyncio
@pytest.mark.parametrize("value", [31, -1, "heavy", "", True])
async def test_out_of_range_preset_sends_nothing(controller, simulator, value):
    outcome = await controller.set_preset_tare(address_of(simulator), value)

    assert outcome.type == "error"
    assert outcome.reason is ErrorReason.OUT_OF_RANGE
    assert outcome.error == "Value must be between 0.0 and 30.0 kg"
    assert simulator.frames_received == []
