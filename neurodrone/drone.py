"""
Drone client for the NeuroDrone system.

This module speaks the Tello SDK text protocol over UDP. Every command is a
single datagram answered by a single reply datagram ("ok" or "error ...").
"""

import asyncio
import logging

from .config import *
from .errors import DeviceCommandError

logger = logging.getLogger(__name__)

ROTATIONS = ('cw', 'ccw')
DIRECTIONS = ('up', 'down', 'left', 'right', 'forward', 'back')
MIN_DISTANCE, MAX_DISTANCE = 20, 500  # cm
MIN_ANGLE, MAX_ANGLE = 1, 360  # degrees


def parse_address(address):
    """Split a "host:port" string into a (host, port) tuple."""
    host, _, port = address.rpartition(':')
    if not host or not port.isdigit():
        raise ValueError(f"Invalid drone address: {address!r}")
    return host, int(port)


class _ReplyProtocol(asyncio.DatagramProtocol):
    """Datagram protocol collecting replies into a queue."""

    def __init__(self):
        self.replies = asyncio.Queue()
        self.transport = None

    def connection_made(self, transport):
        self.transport = transport

    def datagram_received(self, data, addr):
        self.replies.put_nowait(data.decode('ascii', errors='replace').strip())

    def error_received(self, exc):
        self.replies.put_nowait(exc)

    def connection_lost(self, exc):
        self.transport = None


class TelloClient:
    """Asynchronous command-mode client for a Tello drone."""

    def __init__(self, address=DRONE_ADDRESS, local_port=DRONE_LOCAL_PORT,
                 command_timeout=COMMAND_TIMEOUT, flight_timeout=FLIGHT_TIMEOUT):
        """
        Initialize the client.

        Parameters:
        -----------
        address : str
            "host:port" of the drone's command endpoint
        local_port : int
            Local UDP port to bind (0 picks a free port)
        command_timeout : float
            Seconds to wait for the reply to an ordinary command
        flight_timeout : float
            Seconds to wait for the reply to takeoff and land
        """
        self.address = parse_address(address)
        self.local_port = local_port
        self.command_timeout = command_timeout
        self.flight_timeout = flight_timeout
        self._transport = None
        self._protocol = None

    @property
    def is_connected(self):
        return self._transport is not None and not self._transport.is_closing()

    async def connect(self):
        """Open the UDP endpoint towards the drone."""
        if self.is_connected:
            return
        loop = asyncio.get_running_loop()
        self._transport, self._protocol = await loop.create_datagram_endpoint(
            _ReplyProtocol,
            local_addr=('0.0.0.0', self.local_port),
            remote_addr=self.address,
        )
        logger.info(f"Opened command channel to {self.address[0]}:{self.address[1]}")

    async def close(self):
        if self._transport is not None:
            self._transport.close()
            self._transport = None
            self._protocol = None
            logger.info("Closed command channel")

    async def send_command(self, command, timeout=None):
        """
        Send one command and wait for its reply.

        Parameters:
        -----------
        command : str
            Tello SDK command text
        timeout : float, optional
            Reply timeout in seconds (defaults to command_timeout)

        Returns:
        --------
        reply : str
            The reply text (always "ok")
        """
        if not self.is_connected:
            raise DeviceCommandError(f"Cannot send {command!r}: command channel is not open")

        replies = self._protocol.replies
        # Late replies to an earlier timed-out command would be misattributed
        while not replies.empty():
            stale = replies.get_nowait()
            logger.debug(f"Discarding stale reply: {stale!r}")

        logger.debug(f"Sending command: {command}")
        self._transport.sendto(command.encode('ascii'))

        try:
            reply = await asyncio.wait_for(replies.get(), timeout or self.command_timeout)
        except asyncio.TimeoutError as exc:
            raise DeviceCommandError(f"No reply to {command!r}") from exc

        if isinstance(reply, Exception):
            raise DeviceCommandError(f"Socket error while sending {command!r}: {reply}") from reply
        if reply.lower() != 'ok':
            raise DeviceCommandError(f"Drone rejected {command!r}: {reply}")

        logger.debug(f"Command {command!r} acknowledged")
        return reply

    async def enable(self):
        """Enter SDK command mode (the handshake)."""
        return await self.send_command('command')

    async def takeoff(self):
        return await self.send_command('takeoff', self.flight_timeout)

    async def land(self):
        return await self.send_command('land', self.flight_timeout)

    async def rotate(self, direction, degrees):
        """Rotate 'cw' or 'ccw' by the given number of degrees."""
        if direction not in ROTATIONS:
            raise ValueError(f"Unknown rotation direction: {direction}")
        if not MIN_ANGLE <= degrees <= MAX_ANGLE:
            raise ValueError(f"Rotation must be between {MIN_ANGLE} and {MAX_ANGLE} degrees")
        return await self.send_command(f"{direction} {degrees}")

    async def move(self, direction, distance):
        """Move in a direction by the given distance in centimetres."""
        if direction not in DIRECTIONS:
            raise ValueError(f"Unknown move direction: {direction}")
        if not MIN_DISTANCE <= distance <= MAX_DISTANCE:
            raise ValueError(f"Distance must be between {MIN_DISTANCE} and {MAX_DISTANCE} cm")
        return await self.send_command(f"{direction} {distance}")
