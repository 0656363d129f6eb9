"""
Error types for the NeuroDrone system.

Every component raises one of these instead of aborting the process; the
application driver logs them and abandons the current action.
"""


class NeuroDroneError(RuntimeError):
    """Base class for recoverable NeuroDrone failures."""


class DeviceConnectionError(NeuroDroneError):
    """Raised when the drone handshake or socket setup fails."""


class LockContention(NeuroDroneError):
    """Raised when the shared drone handle is already in use."""

    def __init__(self, message="Unable to obtain a lock on the drone"):
        super().__init__(message)


class DeviceCommandError(NeuroDroneError):
    """Raised when a dispatched drone command fails."""


class AcquisitionError(NeuroDroneError):
    """
    Raised when a step of the capture pipeline fails.

    Parameters:
    -----------
    step : AcquisitionState
        The state the session was moving into when it failed
    message : str
        Description of the failure
    """

    def __init__(self, step, message):
        super().__init__(f"Capture failed entering {step.name}: {message}")
        self.step = step


class ClassificationError(NeuroDroneError):
    """Raised when talking to the classifier service fails."""


class ParseError(NeuroDroneError):
    """Raised when offline sample data contains malformed numbers."""
