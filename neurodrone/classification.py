"""
Classification module for the NeuroDrone system.

The classifier itself runs as a separate HTTP service. This module posts
captured readings to it and turns the JSON answer into a PredictionRecord.
"""

import asyncio
import logging

import aiohttp

from .config import *
from .errors import ClassificationError
from .history import PredictionRecord

logger = logging.getLogger(__name__)


class ClassifierClient:
    """HTTP client for the movement classifier service."""

    def __init__(self, url=CLASSIFIER_URL, timeout=CLASSIFIER_TIMEOUT):
        """
        Initialize the client.

        Parameters:
        -----------
        url : str
            Prediction endpoint of the classifier service
        timeout : float
            Total request timeout in seconds
        """
        self.url = url
        self.timeout = timeout

    def classify(self, readings):
        """
        Classify one capture.

        Parameters:
        -----------
        readings : dict
            Channel-keyed sample mapping

        Returns:
        --------
        record : PredictionRecord
            The predicted movement label and its count
        """
        return asyncio.run(self.classify_async(readings))

    async def classify_async(self, readings):
        client_timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with aiohttp.ClientSession(timeout=client_timeout) as session:
                async with session.post(self.url, json=readings) as response:
                    if response.status >= 400:
                        body = await response.text()
                        raise ClassificationError(
                            f"Classifier returned HTTP {response.status}: {body[:200]}"
                        )
                    payload = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ClassificationError(f"Could not reach classifier at {self.url}: {e}") from e
        except ValueError as e:
            raise ClassificationError(f"Classifier returned invalid JSON: {e}") from e

        record = parse_prediction(payload)
        logger.info(f"Prediction: {record.label} (count {record.count})")
        return record


def parse_prediction(payload):
    """
    Validate a classifier response body.

    Parameters:
    -----------
    payload : object
        Decoded JSON body

    Returns:
    --------
    record : PredictionRecord
    """
    if not isinstance(payload, dict):
        raise ClassificationError(f"Expected a JSON object, got {type(payload).__name__}")
    try:
        record = PredictionRecord.from_json(payload)
    except KeyError as e:
        raise ClassificationError(f"Response missing expected field: {e.args[0]}") from e

    if not isinstance(record.label, str):
        raise ClassificationError("prediction_label must be a string")
    if isinstance(record.count, bool) or not isinstance(record.count, int) or record.count < 0:
        raise ClassificationError("prediction_count must be a non-negative integer")
    return record
