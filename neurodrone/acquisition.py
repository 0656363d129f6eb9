"""
Data acquisition module for the NeuroDrone system.

This module drives one fixed-length capture from an OpenBCI board through
BrainFlow and reshapes the board's channel matrix into a column-keyed
mapping that the classifier service accepts. It also provides an offline
CSV source producing the same mapping.
"""

import logging
import time
from enum import Enum

import numpy as np
import pandas as pd
from brainflow.board_shim import BoardIds, BoardShim, BrainFlowInputParams
from brainflow.exit_codes import BrainFlowError

from .config import *
from .errors import AcquisitionError, ParseError
from .utils import Timer

logger = logging.getLogger(__name__)

BOARD_IDS = {
    'cyton_daisy': BoardIds.CYTON_DAISY_BOARD,
    'synthetic': BoardIds.SYNTHETIC_BOARD,
}


class AcquisitionState(Enum):
    """Lifecycle of a capture session."""

    IDLE = 'idle'
    PREPARED = 'prepared'
    STREAMING = 'streaming'
    STOPPED = 'stopped'
    DRAINED = 'drained'
    RELEASED = 'released'
    FAILED = 'failed'

    @property
    def is_terminal(self):
        return self in (AcquisitionState.RELEASED, AcquisitionState.FAILED)


def channel_key(index):
    return f"c{index}"


def to_sample_mapping(data):
    """
    Reshape a board matrix into a channel-keyed mapping.

    Parameters:
    -----------
    data : ndarray
        Board data as a 2D array (channels x samples)

    Returns:
    --------
    readings : dict
        Mapping "c<row>" -> list of float samples, in row order
    """
    matrix = np.asarray(data, dtype=float)
    if matrix.ndim != 2:
        raise ValueError(f"Expected a 2D channel matrix, got shape {matrix.shape}")
    return {channel_key(i): row.tolist() for i, row in enumerate(matrix)}


def resolve_board_id(board_type):
    try:
        return BOARD_IDS[board_type]
    except KeyError:
        raise ValueError(f"Unknown board type: {board_type}") from None


def create_board(board_type=BOARD_TYPE, serial_port=SERIAL_PORT):
    """
    Create a BrainFlow board handle.

    Parameters:
    -----------
    board_type : str
        'cyton_daisy' or 'synthetic'
    serial_port : str
        Serial port of the OpenBCI dongle (ignored for the synthetic board)

    Returns:
    --------
    board : BoardShim
        Unprepared board handle
    """
    board_id = resolve_board_id(board_type)
    params = BrainFlowInputParams()
    if board_id is not BoardIds.SYNTHETIC_BOARD:
        params.serial_port = serial_port
    return BoardShim(board_id.value, params)


class AcquisitionSession:
    """
    One capture cycle: prepare, stream, wait, stop, drain, release.

    A session is single-use. Any failing step aborts the rest of the cycle
    and raises AcquisitionError tagged with the step; the board session is
    released on every exit path once it has been prepared.
    """

    def __init__(self, board, duration, sampling_rate=None,
                 buffer_size=STREAM_BUFFER_SIZE, streamer_params=STREAMER_PARAMS,
                 sleep=time.sleep):
        """
        Initialize the session.

        Parameters:
        -----------
        board : BoardShim
            Board handle (or any object with the same session methods)
        duration : float
            Capture window in seconds
        sampling_rate : int, optional
            Advertised sampling rate, used to report the expected length
        buffer_size : int
            Ring buffer size passed to start_stream
        streamer_params : str
            Streamer parameters passed to start_stream
        sleep : callable
            Function blocking the caller for the capture window
        """
        self.board = board
        self.duration = duration
        self.sampling_rate = sampling_rate
        self.buffer_size = buffer_size
        self.streamer_params = streamer_params
        self.sleep = sleep
        self.state = AcquisitionState.IDLE
        self.elapsed = 0.0
        self.data = None

    @property
    def expected_samples(self):
        if self.sampling_rate is None:
            return None
        return int(round(self.sampling_rate * self.duration))

    @property
    def channel_count(self):
        if self.data is None:
            return 0
        return int(np.asarray(self.data).shape[0])

    def run(self):
        """
        Run the capture cycle.

        Returns:
        --------
        readings : dict
            Channel-keyed sample mapping (see to_sample_mapping)
        """
        if self.state is not AcquisitionState.IDLE:
            raise RuntimeError(f"Capture session already used (state: {self.state.value})")

        try:
            self._advance(AcquisitionState.PREPARED, self.board.prepare_session)
            self._advance(AcquisitionState.STREAMING, self.board.start_stream,
                          self.buffer_size, self.streamer_params)

            with Timer('Capture window') as timer:
                self.sleep(self.duration)
            self.elapsed = timer.elapsed

            self._advance(AcquisitionState.STOPPED, self.board.stop_stream)
            data = self._advance(AcquisitionState.DRAINED, self.board.get_board_data)
            try:
                readings = to_sample_mapping(data)
            except ValueError as e:
                self.state = AcquisitionState.FAILED
                raise AcquisitionError(AcquisitionState.DRAINED, str(e)) from e
            self.data = data

            self._advance(AcquisitionState.RELEASED, self.board.release_session)
        finally:
            if self.state is not AcquisitionState.RELEASED:
                self.state = AcquisitionState.FAILED
                self._release_after_failure()

        logger.info(f"Captured {self.channel_count} channels x "
                    f"{len(readings[channel_key(0)]) if readings else 0} samples "
                    f"(expected {self.expected_samples})")
        return readings

    def _advance(self, target, step, *args):
        try:
            result = step(*args)
        except (BrainFlowError, OSError) as e:
            self.state = AcquisitionState.FAILED
            logger.error(f"Capture step {target.value} failed: {e}")
            raise AcquisitionError(target, str(e)) from e
        self.state = target
        logger.debug(f"Capture session {target.value}")
        return result

    def _release_after_failure(self):
        try:
            if self.board.is_prepared():
                self.board.release_session()
                logger.info("Released board session after failed capture")
        except (BrainFlowError, OSError) as e:
            logger.error(f"Could not release board session: {e}")


def read_csv_samples(path, max_columns=CSV_MAX_COLUMNS, has_header=CSV_HAS_HEADER):
    """
    Read recorded samples from a CSV file.

    Parameters:
    -----------
    path : str
        Path to the CSV file (one row per time step)
    max_columns : int
        Only the first max_columns columns of each row are kept
    has_header : bool
        Whether the first row is a header row

    Returns:
    --------
    readings : dict
        Mapping "c<column>" -> list of float samples, in row order
    """
    try:
        frame = pd.read_csv(path, header=0 if has_header else None, dtype=str,
                            keep_default_na=False, index_col=False,
                            skipinitialspace=True)
    except FileNotFoundError as e:
        raise ParseError(f"Sample file not found: {path}") from e
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise ParseError(f"Could not read {path}: {e}") from e

    frame = frame.iloc[:, :max_columns]
    try:
        values = frame.apply(pd.to_numeric)
    except ValueError as e:
        raise ParseError(f"Malformed number in {path}: {e}") from e
    if values.isna().to_numpy().any():
        raise ParseError(f"Missing value in {path}")

    readings = {channel_key(i): values.iloc[:, i].astype(float).tolist()
                for i in range(values.shape[1])}
    logger.info(f"Loaded {len(frame)} rows x {len(readings)} columns from {path}")
    return readings


class SampleSource:
    """Base class for sample sources."""

    def read(self):
        """Return one channel-keyed sample mapping."""
        raise NotImplementedError("Subclasses must implement read")


class BoardSampleSource(SampleSource):
    """Captures a fresh window from a BrainFlow board on every read."""

    def __init__(self, board_type=BOARD_TYPE, serial_port=SERIAL_PORT, duration=None,
                 board_factory=create_board, sleep=time.sleep):
        self.board_type = board_type
        self.board_id = resolve_board_id(board_type)
        self.serial_port = serial_port
        self.duration = duration if duration is not None else CAPTURE_DURATION[board_type]
        self.board_factory = board_factory
        self.sleep = sleep

    def read(self):
        try:
            board = self.board_factory(self.board_type, self.serial_port)
        except (BrainFlowError, OSError) as e:
            raise AcquisitionError(AcquisitionState.PREPARED, f"Could not create board: {e}") from e

        session = AcquisitionSession(
            board,
            self.duration,
            sampling_rate=BoardShim.get_sampling_rate(self.board_id.value),
            sleep=self.sleep,
        )
        return session.run()


class CsvSampleSource(SampleSource):
    """Reads the same recorded file on every read."""

    def __init__(self, path, max_columns=CSV_MAX_COLUMNS, has_header=CSV_HAS_HEADER):
        self.path = path
        self.max_columns = max_columns
        self.has_header = has_header

    def read(self):
        return read_csv_samples(self.path, self.max_columns, self.has_header)


def create_sample_source(source_type='board', **kwargs):
    """
    Factory function to create an appropriate sample source.

    Parameters:
    -----------
    source_type : str
        Type of sample source ('board' or 'csv')
    **kwargs : dict
        Additional parameters for the sample source

    Returns:
    --------
    source : SampleSource
        The created sample source
    """
    if source_type == 'board':
        return BoardSampleSource(**kwargs)
    elif source_type == 'csv':
        return CsvSampleSource(**kwargs)
    else:
        raise ValueError(f"Unknown sample source type: {source_type}")
