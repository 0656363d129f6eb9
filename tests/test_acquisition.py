import numpy as np
import pytest

from neurodrone.acquisition import (
    AcquisitionSession,
    AcquisitionState,
    BoardSampleSource,
    CsvSampleSource,
    create_sample_source,
    read_csv_samples,
    to_sample_mapping,
)
from neurodrone.errors import AcquisitionError, ParseError

FULL_CYCLE = [
    "prepare_session",
    "start_stream",
    "stop_stream",
    "get_board_data",
    "release_session",
]


def make_session(board, duration=2.0, sampling_rate=None):
    slept = []
    session = AcquisitionSession(board, duration, sampling_rate=sampling_rate, sleep=slept.append)
    return session, slept


def test_capture_runs_full_cycle(fake_board):
    board = fake_board()
    session, slept = make_session(board, duration=10.0)

    readings = session.run()

    assert board.calls == FULL_CYCLE
    assert board.stream_args == (45000, "")
    assert slept == [10.0]
    assert session.state is AcquisitionState.RELEASED
    assert session.state.is_terminal
    assert readings == {
        "c0": [0.0, 1.0, 2.0, 3.0],
        "c1": [4.0, 5.0, 6.0, 7.0],
        "c2": [8.0, 9.0, 10.0, 11.0],
    }


def test_every_channel_has_window_length(fake_board):
    rate, duration, channels = 125, 4.0, 24
    board = fake_board(data=np.random.default_rng(0).normal(size=(channels, int(rate * duration))))
    session, _ = make_session(board, duration=duration, sampling_rate=rate)

    readings = session.run()

    assert list(readings) == [f"c{i}" for i in range(channels)]
    assert {len(samples) for samples in readings.values()} == {session.expected_samples}
    assert session.channel_count == channels


@pytest.mark.parametrize(
    "failing_call, step",
    [
        ("prepare_session", AcquisitionState.PREPARED),
        ("start_stream", AcquisitionState.STREAMING),
        ("stop_stream", AcquisitionState.STOPPED),
        ("get_board_data", AcquisitionState.DRAINED),
    ],
)
def test_failure_is_tagged_with_step(fake_board, failing_call, step):
    board = fake_board(fail_on=failing_call)
    session, _ = make_session(board)

    with pytest.raises(AcquisitionError) as excinfo:
        session.run()

    assert excinfo.value.step is step
    assert session.state is AcquisitionState.FAILED
    index = FULL_CYCLE.index(failing_call)
    assert board.calls[: index + 1] == FULL_CYCLE[: index + 1]
    assert board.calls[index + 1 :] in ([], ["release_session"])


def test_drain_failure_still_releases_board(fake_board):
    board = fake_board(fail_on="get_board_data")
    session, _ = make_session(board)

    with pytest.raises(AcquisitionError) as excinfo:
        session.run()

    assert excinfo.value.step is AcquisitionState.DRAINED
    assert board.calls[-1] == "release_session"
    assert not board.prepared
    assert session.data is None


def test_prepare_failure_does_not_release_unprepared_board(fake_board):
    board = fake_board(fail_on="prepare_session")
    session, _ = make_session(board)

    with pytest.raises(AcquisitionError):
        session.run()

    assert board.calls == ["prepare_session"]


def test_release_failure_fails_capture(fake_board):
    board = fake_board(fail_on="release_session")
    session, _ = make_session(board)

    with pytest.raises(AcquisitionError) as excinfo:
        session.run()

    assert excinfo.value.step is AcquisitionState.RELEASED
    assert session.state is AcquisitionState.FAILED


def test_interrupted_window_releases_board(fake_board):
    board = fake_board()

    def interrupted(seconds):
        raise KeyboardInterrupt

    session = AcquisitionSession(board, 10.0, sleep=interrupted)

    with pytest.raises(KeyboardInterrupt):
        session.run()

    assert board.calls == ["prepare_session", "start_stream", "release_session"]
    assert session.state is AcquisitionState.FAILED


def test_session_is_single_use(fake_board):
    session, _ = make_session(fake_board())
    session.run()

    with pytest.raises(RuntimeError):
        session.run()


def test_non_matrix_board_data_fails_drain(fake_board):
    board = fake_board(data=np.zeros(5))
    session, _ = make_session(board)

    with pytest.raises(AcquisitionError) as excinfo:
        session.run()

    assert excinfo.value.step is AcquisitionState.DRAINED
    assert board.calls[-1] == "release_session"


def test_to_sample_mapping_preserves_order():
    readings = to_sample_mapping([[3, 1, 2], [9, 8, 7]])

    assert readings == {"c0": [3.0, 1.0, 2.0], "c1": [9.0, 8.0, 7.0]}


def test_board_source_uses_advertised_duration(fake_board):
    created = []
    slept = []

    def factory(board_type, serial_port):
        created.append((board_type, serial_port))
        return fake_board(data=np.ones((4, 250)))

    source = BoardSampleSource(board_type="synthetic", board_factory=factory, sleep=slept.append)
    readings = source.read()

    assert created == [("synthetic", "/dev/ttyUSB0")]
    assert slept == [5.0]
    assert len(readings) == 4


def test_unknown_board_type_is_rejected():
    with pytest.raises(ValueError):
        BoardSampleSource(board_type="muse")


def write_csv(path, rows, header=True, columns=32):
    lines = []
    if header:
        lines.append(",".join(f"ch{i}" for i in range(columns)))
    lines.extend(",".join(str(value) for value in row) for row in rows)
    path.write_text("\n".join(lines) + "\n")


def test_csv_rows_become_columns(tmp_path):
    path = tmp_path / "samples.csv"
    rows = [[row * 100 + col for col in range(32)] for row in range(5)]
    write_csv(path, rows)

    readings = read_csv_samples(str(path))

    assert list(readings) == [f"c{i}" for i in range(32)]
    assert all(len(samples) == 5 for samples in readings.values())
    assert readings["c3"] == [3.0, 103.0, 203.0, 303.0, 403.0]


def test_csv_is_capped_at_32_columns(tmp_path):
    path = tmp_path / "wide.csv"
    write_csv(path, [[1.5] * 40, [2.5] * 40], columns=40)

    readings = read_csv_samples(str(path))

    assert len(readings) == 32
    assert readings["c31"] == [1.5, 2.5]


def test_csv_without_header(tmp_path):
    path = tmp_path / "raw.csv"
    write_csv(path, [[1, 2], [3, 4]], header=False)

    readings = read_csv_samples(str(path), has_header=False)

    assert readings == {"c0": [1.0, 3.0], "c1": [2.0, 4.0]}


def test_malformed_number_aborts_ingestion(tmp_path):
    path = tmp_path / "bad.csv"
    rows = [[1.0] * 32 for _ in range(3)]
    rows[2][7] = "1.2.3"
    write_csv(path, rows)

    with pytest.raises(ParseError):
        read_csv_samples(str(path))


def test_missing_csv_raises_parse_error(tmp_path):
    with pytest.raises(ParseError):
        read_csv_samples(str(tmp_path / "missing.csv"))


def test_csv_source_factory(tmp_path):
    path = tmp_path / "samples.csv"
    write_csv(path, [[0.5, 1.5]], columns=2)

    source = create_sample_source("csv", path=str(path))

    assert isinstance(source, CsvSampleSource)
    assert source.read() == {"c0": [0.5], "c1": [1.5]}
    with pytest.raises(ValueError):
        create_sample_source("serial")
