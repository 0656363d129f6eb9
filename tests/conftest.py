import asyncio
import threading

import numpy as np
import pytest
from brainflow.exit_codes import BrainFlowError

from neurodrone.control import DeviceCoordinator
from neurodrone.errors import DeviceCommandError


class FakeBoard:
    """Stand-in for a BrainFlow BoardShim recording every session call."""

    def __init__(self, data=None, fail_on=None):
        self.data = data if data is not None else np.arange(12, dtype=float).reshape(3, 4)
        self.fail_on = fail_on
        self.calls = []
        self.prepared = False
        self.stream_args = None

    def _call(self, name):
        self.calls.append(name)
        if name == self.fail_on:
            raise BrainFlowError(f"{name} failed", 7)

    def prepare_session(self):
        self._call("prepare_session")
        self.prepared = True

    def start_stream(self, buffer_size, streamer_params):
        self._call("start_stream")
        self.stream_args = (buffer_size, streamer_params)

    def stop_stream(self):
        self._call("stop_stream")

    def get_board_data(self):
        self._call("get_board_data")
        return self.data

    def release_session(self):
        self._call("release_session")
        self.prepared = False

    def is_prepared(self):
        return self.prepared


class FakeDroneClient:
    """Minimal async drone client used in coordinator tests."""

    def __init__(self, handshake_succeeds=True, failing_commands=()):
        self.handshake_succeeds = handshake_succeeds
        self.failing_commands = set(failing_commands)
        self.calls = []
        self.closed = False
        self.started = threading.Event()
        self.proceed = threading.Event()
        self.proceed.set()

    async def connect(self):
        self.calls.append("connect")

    async def enable(self):
        self.calls.append("command")
        if not self.handshake_succeeds:
            raise DeviceCommandError("No reply to 'command'")

    async def close(self):
        self.closed = True

    async def _command(self, text):
        self.calls.append(text)
        self.started.set()
        while not self.proceed.is_set():
            await asyncio.sleep(0.01)
        if text.split()[0] in self.failing_commands:
            raise DeviceCommandError(f"Drone rejected {text!r}: error")

    async def takeoff(self):
        await self._command("takeoff")

    async def land(self):
        await self._command("land")

    async def rotate(self, direction, degrees):
        await self._command(f"{direction} {degrees}")

    async def move(self, direction, distance):
        await self._command(f"{direction} {distance}")


@pytest.fixture
def fake_board():
    return FakeBoard


@pytest.fixture
def drone_clients():
    """Clients handed out by the coordinator factory, newest last."""
    return []


@pytest.fixture
def coordinator_setup(drone_clients):
    """Create DeviceCoordinators backed by fake drone clients."""
    coordinators = []

    def _create(**client_kwargs):
        def factory():
            client = FakeDroneClient(**client_kwargs)
            drone_clients.append(client)
            return client

        coordinator = DeviceCoordinator(client_factory=factory)
        coordinators.append(coordinator)
        return coordinator

    yield _create

    for coordinator in coordinators:
        coordinator.close()
