"""
Configuration module for the NeuroDrone system.

This module contains all the configuration parameters for the system,
including board acquisition, classifier service, and drone control settings.
"""

# ===== General Settings =====
PROJECT_NAME = "NeuroDrone Brain Reader"
DEBUG_MODE = True

# ===== Data Acquisition =====
# Board settings ('cyton_daisy' for hardware, 'synthetic' for development)
BOARD_TYPE = 'cyton_daisy'
SERIAL_PORT = '/dev/ttyUSB0'  # Update with your dongle's serial port

# Streaming settings
STREAM_BUFFER_SIZE = 45000  # Samples kept by the board ring buffer
STREAMER_PARAMS = ''  # No extra streamer outputs

# Capture window per board (seconds)
CAPTURE_DURATION = {
    'cyton_daisy': 10.0,
    'synthetic': 5.0,
}

# ===== Offline Samples =====
CSV_PATH = ''  # Read samples from this file instead of a board when set
CSV_MAX_COLUMNS = 32  # Cyton+Daisy exports at most 32 columns per row
CSV_HAS_HEADER = True

# ===== Classification Service =====
CLASSIFIER_URL = 'http://127.0.0.1:5000/prediction'
CLASSIFIER_TIMEOUT = 30.0  # seconds

# ===== Device Control =====
# Tello SDK command endpoint
DRONE_ADDRESS = '192.168.10.1:8889'
DRONE_LOCAL_PORT = 0  # 0 lets the OS pick the local UDP port
COMMAND_TIMEOUT = 10.0  # seconds to wait for a reply
FLIGHT_TIMEOUT = 20.0  # takeoff and land take longer to acknowledge

# Movement parameters
ROTATION_ANGLE = 90  # degrees
MOVE_DISTANCE = 100  # cm

# Movement vocabulary produced by the classifier
MOVEMENTS = ['takeoff', 'right', 'left', 'land', 'forward', 'backward']

# ===== File Storage =====
OUTPUT_DIR = ''
SAVE_DIR = ''  # Captures are saved here when set
RECORDING_FORMAT = 'json'  # 'json', 'csv', 'npz' or 'pickle'
