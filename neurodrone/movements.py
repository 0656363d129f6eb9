"""
Movement module for the NeuroDrone system.

Maps the labels produced by the classifier service onto concrete drone
commands. Unknown labels never raise: classification noise resolves to a
no-op command.
"""

from dataclasses import dataclass
from enum import Enum

from .config import *


class Movement(Enum):
    """Kinds of command the drone can be asked to perform."""

    TAKEOFF = 'takeoff'
    LAND = 'land'
    ROTATE_CW = 'cw'
    ROTATE_CCW = 'ccw'
    FORWARD = 'forward'
    BACKWARD = 'back'
    NONE = 'none'


@dataclass(frozen=True)
class CommandRequest:
    """A resolved, ready-to-dispatch drone action."""

    movement: Movement
    amount: int = 0

    @property
    def is_noop(self):
        return self.movement is Movement.NONE

    def __str__(self):
        if self.amount:
            return f"{self.movement.value} {self.amount}"
        return self.movement.value


TAKEOFF = CommandRequest(Movement.TAKEOFF)
LAND = CommandRequest(Movement.LAND)
NOOP = CommandRequest(Movement.NONE)


def rotate_clockwise(angle=ROTATION_ANGLE):
    return CommandRequest(Movement.ROTATE_CW, angle)


def rotate_counter_clockwise(angle=ROTATION_ANGLE):
    return CommandRequest(Movement.ROTATE_CCW, angle)


def move_forward(distance=MOVE_DISTANCE):
    return CommandRequest(Movement.FORWARD, distance)


def move_backward(distance=MOVE_DISTANCE):
    return CommandRequest(Movement.BACKWARD, distance)


_LABEL_FACTORIES = {
    'takeoff': lambda: TAKEOFF,
    'right': rotate_clockwise,
    'left': rotate_counter_clockwise,
    'land': lambda: LAND,
    'forward': move_forward,
    'backward': move_backward,
}


class MovementResolver:
    """Resolve classifier labels into drone commands."""

    def __init__(self, vocabulary=MOVEMENTS):
        """
        Initialize the resolver.

        Parameters:
        -----------
        vocabulary : list
            Canonical lowercase labels to accept. Each one is also accepted
            with its first letter capitalized.
        """
        self.table = {}
        for label in vocabulary:
            factory = _LABEL_FACTORIES[label]
            self.table[label] = factory
            self.table[label.capitalize()] = factory

    def resolve(self, label):
        """
        Resolve a label into a command.

        Parameters:
        -----------
        label : str
            Label returned by the classifier

        Returns:
        --------
        command : CommandRequest
            The matching command, or NOOP for anything unrecognized
        """
        factory = self.table.get(label)
        if factory is None:
            return NOOP
        return factory()

    def is_known(self, label):
        return label in self.table


def resolve(label):
    """Resolve a label using the default vocabulary."""
    return _default_resolver.resolve(label)


_default_resolver = MovementResolver()
