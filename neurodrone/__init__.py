"""
NeuroDrone Brain Reader

Reads EEG captures from an OpenBCI board, asks a classifier service which
movement they show, and flies a Tello drone accordingly.
"""

__version__ = '0.1.0'

# Import main components for easy access
from .main import Pilot
from .acquisition import (
    AcquisitionSession, AcquisitionState, SampleSource, BoardSampleSource,
    CsvSampleSource, read_csv_samples,
)
from .classification import ClassifierClient
from .control import DeviceCoordinator, DeviceGuard
from .drone import TelloClient
from .history import PredictionHistory, PredictionRecord
from .movements import CommandRequest, Movement, MovementResolver
from .errors import (
    NeuroDroneError, DeviceConnectionError, LockContention, DeviceCommandError,
    AcquisitionError, ClassificationError, ParseError,
)
from . import utils

# Define package exports
__all__ = [
    'Pilot',
    'AcquisitionSession',
    'AcquisitionState',
    'SampleSource',
    'BoardSampleSource',
    'CsvSampleSource',
    'read_csv_samples',
    'ClassifierClient',
    'DeviceCoordinator',
    'DeviceGuard',
    'TelloClient',
    'PredictionHistory',
    'PredictionRecord',
    'CommandRequest',
    'Movement',
    'MovementResolver',
    'NeuroDroneError',
    'DeviceConnectionError',
    'LockContention',
    'DeviceCommandError',
    'AcquisitionError',
    'ClassificationError',
    'ParseError',
    'utils',
]
