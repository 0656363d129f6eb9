"""
Control module for the NeuroDrone system.

This module coordinates access to the single drone connection. Callers are
synchronous and must never wait on each other: the device lock is taken
without blocking and contention fails immediately. Once the lock is held,
each command runs to completion on an event loop owned by the coordinator.
"""

import asyncio
import logging
import threading

from .config import *
from .drone import TelloClient
from .errors import DeviceCommandError, DeviceConnectionError, LockContention
from .movements import Movement

logger = logging.getLogger(__name__)


class DeviceGuard:
    """Exclusive access to the drone, released on exit or by release()."""

    def __init__(self, coordinator):
        self._coordinator = coordinator
        self.released = False

    def release(self):
        if not self.released:
            self.released = True
            self._coordinator._release(self)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.release()


class DeviceCoordinator:
    """
    Owner of the shared drone handle.

    The handle is created on the first successful connect() and reused until
    close(). Device coroutines run on one long-lived event loop in a daemon
    thread; the calling thread blocks until each one finishes.
    """

    def __init__(self, client_factory=None, address=DRONE_ADDRESS):
        """
        Initialize the coordinator.

        Parameters:
        -----------
        client_factory : callable, optional
            Zero-argument callable returning a new drone client. Defaults to
            a TelloClient for the given address.
        address : str
            "host:port" of the drone, used by the default factory
        """
        if client_factory is None:
            client_factory = lambda: TelloClient(address=address)
        self.client_factory = client_factory
        self.handle = None
        self._lock = threading.Lock()
        self._handle_lock = threading.Lock()
        self._guard = None
        self._loop = None
        self.thread = None

    @property
    def is_connected(self):
        return self.handle is not None

    def start(self):
        """Start the event loop thread."""
        if self.thread is not None and self.thread.is_alive():
            logger.warning("Device loop is already running")
            return

        self._loop = asyncio.new_event_loop()
        self.thread = threading.Thread(target=self._loop.run_forever, name='device-loop')
        self.thread.daemon = True
        self.thread.start()
        logger.info("Device loop started")

    def close(self):
        """Close the drone handle and stop the event loop thread."""
        if self.thread is None or not self.thread.is_alive():
            return

        if self.handle is not None:
            try:
                self._run(self.handle.close())
            except OSError as e:
                logger.error(f"Error closing drone handle: {e}")
            self.handle = None

        self._loop.call_soon_threadsafe(self._loop.stop)
        self.thread.join(timeout=1.0)
        self._loop.close()
        self.thread = None
        self._loop = None
        logger.info("Device loop stopped")

    def _run(self, coro):
        """Run a coroutine on the device loop and wait for its result."""
        if self.thread is None or not self.thread.is_alive():
            self.start()
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result()

    def try_acquire(self):
        """
        Take exclusive access to the drone without waiting.

        Returns:
        --------
        guard : DeviceGuard
            Guard to pass to dispatch(); release it (or use it as a context
            manager) when done

        Raises:
        -------
        LockContention
            If another caller currently holds the drone
        """
        if not self._lock.acquire(blocking=False):
            raise LockContention()
        self._guard = DeviceGuard(self)
        return self._guard

    def _release(self, guard):
        if guard is self._guard:
            self._guard = None
            self._lock.release()

    def connect(self):
        """
        Open the drone connection and perform the SDK handshake.

        Only the first successful call talks to the drone; later calls
        return the existing handle. A failed attempt leaves no handle, so the
        operator may try again.

        Returns:
        --------
        handle : TelloClient
            The shared drone handle
        """
        with self._handle_lock:
            if self.handle is not None:
                return self.handle

            client = self.client_factory()
            try:
                self._run(client.connect())
                self._run(client.enable())
            except (OSError, DeviceCommandError) as e:
                try:
                    self._run(client.close())
                except OSError as close_error:
                    logger.debug(f"Ignoring close failure after handshake error: {close_error}")
                raise DeviceConnectionError(f"Drone handshake failed: {e}") from e

            self.handle = client
            logger.info("Connected to drone")
            return self.handle

    def dispatch(self, guard, command):
        """
        Execute one command on the drone while holding the guard.

        Parameters:
        -----------
        guard : DeviceGuard
            The live guard returned by try_acquire()
        command : CommandRequest
            Command to execute; a no-op command sends nothing

        Raises:
        -------
        DeviceCommandError
            If the guard is stale, there is no connection, or the drone
            reports a failure
        """
        if guard is None or guard.released or guard is not self._guard:
            raise DeviceCommandError("Dispatch requires the live device guard")
        if command.is_noop:
            logger.debug("No-op command, nothing dispatched")
            return
        if self.handle is None:
            raise DeviceCommandError(f"Cannot dispatch {command}: drone is not connected")

        logger.info(f"Dispatching command: {command}")
        try:
            self._run(self._operation(self.handle, command))
        except OSError as e:
            raise DeviceCommandError(f"Command {command} failed: {e}") from e

    def _operation(self, handle, command):
        """Build the device coroutine for a command."""
        movement = command.movement
        if movement is Movement.TAKEOFF:
            return handle.takeoff()
        elif movement is Movement.LAND:
            return handle.land()
        elif movement is Movement.ROTATE_CW:
            return handle.rotate('cw', command.amount)
        elif movement is Movement.ROTATE_CCW:
            return handle.rotate('ccw', command.amount)
        elif movement is Movement.FORWARD:
            return handle.move('forward', command.amount)
        elif movement is Movement.BACKWARD:
            return handle.move('back', command.amount)
        else:
            raise ValueError(f"Unknown movement: {movement}")
