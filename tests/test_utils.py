import json
import os

import numpy as np
import pandas as pd

from neurodrone.utils import Timer, recording_path, save_data

READINGS = {"c0": [1.0, 2.0, 3.0], "c1": [4.0, 5.0, 6.0]}


def test_save_json(tmp_path):
    path = tmp_path / "nested" / "capture.json"

    assert save_data(READINGS, str(path))
    assert json.loads(path.read_text()) == READINGS


def test_save_csv_has_one_column_per_channel(tmp_path):
    path = tmp_path / "capture.csv"

    assert save_data(READINGS, str(path))

    frame = pd.read_csv(path)
    assert list(frame.columns) == ["c0", "c1"]
    assert frame["c1"].tolist() == [4.0, 5.0, 6.0]


def test_save_npz(tmp_path):
    path = tmp_path / "capture.npz"

    assert save_data(READINGS, str(path))
    with np.load(path) as archive:
        assert archive["c0"].tolist() == READINGS["c0"]


def test_unsupported_extension(tmp_path):
    assert not save_data(READINGS, str(tmp_path / "capture.xyz"))


def test_recording_path_uses_format(tmp_path):
    path = recording_path(str(tmp_path), fmt="pickle")

    assert os.path.dirname(path) == str(tmp_path)
    assert os.path.basename(path).startswith("capture_")
    assert path.endswith(".pkl")


def test_timer_measures_elapsed():
    with Timer("test") as timer:
        pass

    assert timer.elapsed >= 0
    assert timer.stop() == 0
