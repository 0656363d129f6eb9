"""
Utility functions for the NeuroDrone system.

This module provides helpers used across the system: timing of blocking
steps and saving captured readings to disk.
"""

import json
import logging
import os
import pickle
import time
from datetime import datetime

import numpy as np
import pandas as pd

from .config import *

logger = logging.getLogger(__name__)


def create_timestamp():
    """
    Create a formatted timestamp for filenames.

    Returns:
    --------
    timestamp : str
        Formatted timestamp string
    """
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def save_data(data, filename, create_dirs=True):
    """
    Save readings to a file in a format chosen by the file extension.

    Parameters:
    -----------
    data : dict
        Channel-keyed readings to save
    filename : str
        Path to the output file (.json, .csv, .npz, .npy or .pkl)
    create_dirs : bool
        If True, create parent directories if they don't exist

    Returns:
    --------
    success : bool
        True if data was saved successfully
    """
    if create_dirs:
        os.makedirs(os.path.dirname(os.path.abspath(filename)), exist_ok=True)

    ext = os.path.splitext(filename)[1].lower()

    try:
        if ext == '.pkl' or ext == '.pickle':
            with open(filename, 'wb') as f:
                pickle.dump(data, f)
        elif ext == '.json':
            with open(filename, 'w') as f:
                json.dump(data, f)
        elif ext == '.csv':
            # One row per sample, one column per channel
            pd.DataFrame(data).to_csv(filename, index=False)
        elif ext == '.npz':
            np.savez(filename, **data)
        elif ext == '.npy':
            np.save(filename, np.array(list(data.values())))
        else:
            logger.error(f"Unsupported file format: {ext}")
            return False

        logger.info(f"Saved data to {filename}")
        return True

    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Error saving to {filename}: {e}")
        return False


def recording_path(directory, prefix='capture', fmt=RECORDING_FORMAT):
    """Build a timestamped path for a new recording."""
    ext = 'pkl' if fmt == 'pickle' else fmt
    return os.path.join(directory, f"{prefix}_{create_timestamp()}.{ext}")


class Timer:
    """Simple timer class for measuring execution time."""

    def __init__(self, name=None):
        """
        Initialize the timer.

        Parameters:
        -----------
        name : str, optional
            Name for this timer (used in logging)
        """
        self.name = name or "Timer"
        self.start_time = None
        self.elapsed = 0

    def __enter__(self):
        """Start the timer when entering a context."""
        self.start()
        return self

    def __exit__(self, *args):
        """Stop the timer when exiting a context."""
        self.stop()
        logger.info(f"{self.name}: {self.elapsed:.4f} seconds")

    def start(self):
        """Start the timer."""
        self.start_time = time.time()
        return self

    def stop(self):
        """Stop the timer and return elapsed time."""
        if self.start_time is None:
            return 0

        self.elapsed = time.time() - self.start_time
        self.start_time = None
        return self.elapsed
