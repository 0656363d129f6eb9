#!/usr/bin/env python
"""
Main module for the NeuroDrone system.

This is the entry point for the NeuroDrone system: it reads a capture from
the EEG board, asks the classifier service which movement it shows, and
flies the drone accordingly. Each operator action is a single blocking call;
a failed action is logged and abandoned without touching prior state.
"""

import argparse
import logging
import os

from . import config
from .acquisition import create_sample_source
from .classification import ClassifierClient
from .control import DeviceCoordinator
from .errors import NeuroDroneError
from .history import PredictionHistory
from .movements import LAND, TAKEOFF, MovementResolver
from .utils import recording_path, save_data

logger = logging.getLogger(__name__)


def setup_logging(debug=None, output_dir=None):
    """
    Configure logging for the application.

    Parameters:
    -----------
    debug : bool, optional
        Force DEBUG level; defaults to INFO when DEBUG_MODE is set
    output_dir : str, optional
        When set, also log to neurodrone.log in this directory
    """
    if debug:
        level = logging.DEBUG
    else:
        level = logging.INFO if config.DEBUG_MODE else logging.WARNING

    handlers = [logging.StreamHandler()]
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
        handlers.append(logging.FileHandler(os.path.join(output_dir, 'neurodrone.log')))

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )


def load_settings(overrides=None):
    """
    Build the settings dictionary from the config module.

    Parameters:
    -----------
    overrides : dict, optional
        Uppercase setting names mapped to replacement values

    Returns:
    --------
    settings : dict
        All uppercase config values with the overrides applied
    """
    settings = {key: getattr(config, key) for key in dir(config) if key.isupper()}
    for key, value in (overrides or {}).items():
        if key in settings:
            settings[key] = value
            logger.info(f"Override config: {key} = {value}")
        else:
            logger.warning(f"Ignoring unknown config key: {key}")
    return settings


class Pilot:
    """
    Application driver tying the capture, classifier and drone together.
    """

    def __init__(self, config=None, sample_source=None, classifier=None, coordinator=None):
        """
        Initialize the pilot.

        Parameters:
        -----------
        config : dict, optional
            Configuration dictionary to override default settings
        sample_source : SampleSource, optional
            Source of readings (defaults to the configured board or CSV file)
        classifier : ClassifierClient, optional
            Classifier service client
        coordinator : DeviceCoordinator, optional
            Drone coordinator
        """
        self.settings = load_settings(config)
        settings = self.settings

        if sample_source is None:
            if settings['CSV_PATH']:
                sample_source = create_sample_source(
                    'csv',
                    path=settings['CSV_PATH'],
                    max_columns=settings['CSV_MAX_COLUMNS'],
                    has_header=settings['CSV_HAS_HEADER'],
                )
            else:
                board_type = settings['BOARD_TYPE']
                duration = settings['CAPTURE_DURATION']
                if isinstance(duration, dict):
                    duration = duration[board_type]
                sample_source = create_sample_source(
                    'board',
                    board_type=board_type,
                    serial_port=settings['SERIAL_PORT'],
                    duration=duration,
                )
        self.sample_source = sample_source

        self.classifier = classifier or ClassifierClient(
            url=settings['CLASSIFIER_URL'],
            timeout=settings['CLASSIFIER_TIMEOUT'],
        )
        self.coordinator = coordinator or DeviceCoordinator(address=settings['DRONE_ADDRESS'])
        self.resolver = MovementResolver(settings['MOVEMENTS'])

        # Operator-visible state
        self.movement = ''
        self.reading_counter = 0
        self.history = PredictionHistory()
        self.connection = False

    def read_brain(self):
        """Capture readings, classify them and record the prediction."""
        try:
            readings = self.sample_source.read()
            record = self.classifier.classify(readings)
        except NeuroDroneError as e:
            logger.error(f"Reading abandoned: {e}")
            return False

        if self.settings['SAVE_DIR']:
            save_data(readings, recording_path(self.settings['SAVE_DIR'],
                                               fmt=self.settings['RECORDING_FORMAT']))

        self.movement = record.label
        self.reading_counter = record.count
        self.history.append(record)
        return True

    def connect(self):
        """Connect to the drone and enter command mode."""
        if self.connection:
            return True

        try:
            with self.coordinator.try_acquire():
                self.coordinator.connect()
        except NeuroDroneError as e:
            logger.error(f"Connect abandoned: {e}")
            return False

        self.connection = True
        return True

    def execute(self):
        """Fly the movement from the latest prediction."""
        if not self.resolver.is_known(self.movement):
            logger.info(f"No drone command for prediction {self.movement!r}")
        return self._dispatch(self.resolver.resolve(self.movement))

    def takeoff(self):
        return self._dispatch(TAKEOFF)

    def land(self):
        return self._dispatch(LAND)

    def _dispatch(self, command):
        if not self.connection:
            logger.warning(f"Not connected, ignoring {command}")
            return False

        try:
            with self.coordinator.try_acquire() as guard:
                self.coordinator.dispatch(guard, command)
        except NeuroDroneError as e:
            logger.error(f"Command {command} abandoned: {e}")
            return False
        return True

    def close(self):
        self.coordinator.close()


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='NeuroDrone brain reader')

    # Configuration options
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    parser.add_argument('--output', type=str, help='Output directory for the log file')

    # Acquisition options
    parser.add_argument('--board', choices=sorted(config.CAPTURE_DURATION),
                        help='EEG board type')
    parser.add_argument('--port', type=str, help='Serial port for the OpenBCI dongle')
    parser.add_argument('--duration', type=float, help='Capture window in seconds')
    parser.add_argument('--csv', type=str, help='Read samples from a CSV file instead of a board')
    parser.add_argument('--save-dir', type=str, help='Save every capture to this directory')

    # Service and control options
    parser.add_argument('--classifier-url', type=str, help='Classifier prediction endpoint')
    parser.add_argument('--drone-address', type=str, help='Drone command address (host:port)')

    return parser.parse_args(argv)


def build_config(args):
    """Translate parsed arguments into config overrides."""
    overrides = {}

    if args.debug:
        overrides['DEBUG_MODE'] = True
    if args.output:
        overrides['OUTPUT_DIR'] = args.output
    if args.board:
        overrides['BOARD_TYPE'] = args.board
    if args.port:
        overrides['SERIAL_PORT'] = args.port
    if args.duration:
        overrides['CAPTURE_DURATION'] = args.duration
    if args.csv:
        overrides['CSV_PATH'] = args.csv
    if args.save_dir:
        overrides['SAVE_DIR'] = args.save_dir
    if args.classifier_url:
        overrides['CLASSIFIER_URL'] = args.classifier_url
    if args.drone_address:
        overrides['DRONE_ADDRESS'] = args.drone_address

    return overrides


def print_status(pilot):
    print(f"movement: {pilot.movement or '-'}  count: {pilot.reading_counter}  "
          f"connected: {'yes' if pilot.connection else 'no'}")


def print_history(pilot):
    print("Predictions Count\tServer Predictions")
    for count, label in zip(pilot.history.render_counts().splitlines(),
                            pilot.history.render_labels().splitlines()):
        print(f"{count}\t\t\t{label}")


def main(argv=None):
    """Main entry point."""
    args = parse_arguments(argv)
    setup_logging(debug=args.debug, output_dir=args.output)

    pilot = Pilot(config=build_config(args))
    actions = {
        'read': pilot.read_brain,
        'connect': pilot.connect,
        'execute': pilot.execute,
        'takeoff': pilot.takeoff,
        'land': pilot.land,
    }

    print(config.PROJECT_NAME)
    print("Available commands:")
    print("  read    - Read my mind (capture and classify)")
    print("  connect - Connect to the drone")
    print("  execute - Execute the latest reading")
    print("  takeoff - Take off")
    print("  land    - Land")
    print("  history - Show prediction history")
    print("  quit    - Exit the program")

    try:
        while True:
            cmd = input("> ").strip().lower()

            if cmd in actions:
                actions[cmd]()
                print_status(pilot)

            elif cmd == 'history':
                print_history(pilot)

            elif cmd == 'quit':
                break

            elif cmd:
                print("Unknown command")

    except (KeyboardInterrupt, EOFError):
        print("\nExiting...")

    finally:
        pilot.close()


if __name__ == '__main__':
    main()
