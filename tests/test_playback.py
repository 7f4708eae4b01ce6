import pytest

from moostools.messages import DataType
from moostools.playback import LogPlayback, PlaybackEntry

LOG = """%% LOGFILE test
%% a comment
header line
0.0 B_VAR pB hello
0.0 A_VAR pA 1
0.5 C_VAR pA 2
3.0 D_VAR pB some text
"""


def _playback(tmp_path, text=LOG, clock=lambda: 42.0):
    path = tmp_path / "run.alog"
    path.write_text(text)
    playback = LogPlayback(clock=clock)
    playback.load(path)
    return playback


def test_load_skips_comments_and_header(tmp_path):
    playback = _playback(tmp_path)
    assert len(playback) == 4
    assert playback.header == "header line"
    assert playback.sources == {"pA", "pB"}


def test_entries_sorted_by_time_then_text(tmp_path):
    playback = _playback(tmp_path)
    names = [entry.what for entry in playback.entries]
    assert names == ["A_VAR", "B_VAR", "C_VAR", "D_VAR"]
    times = [entry.time for entry in playback.entries]
    assert times == sorted(times)


def test_numeric_and_string_entries(tmp_path):
    playback = _playback(tmp_path)
    first = playback.entries[0]
    assert first.numeric is True
    assert first.value == 1.0
    assert first.text == ""
    last = playback.entries[-1]
    assert last.numeric is False
    assert last.text == "some text"


def test_start_and_finish_time(tmp_path):
    playback = _playback(tmp_path)
    assert playback.start_time() == 0.0
    assert playback.finish_time() == 3.0


def test_empty_playback():
    playback = LogPlayback()
    assert len(playback) == 0
    assert playback.start_time() == 0.0
    assert playback.finish_time() == 0.0
    assert playback.reset() is False
    assert playback.iterate() == []


def test_load_missing_file_raises(tmp_path):
    with pytest.raises(OSError):
        LogPlayback().load(tmp_path / "absent.alog")


def test_iterate_plays_whole_log(tmp_path):
    playback = _playback(tmp_path)
    assert playback.reset() is True
    playback.set_tick_interval(1.0)

    first = playback.iterate()
    assert [m.key for m in first] == ["C_VAR", "B_VAR", "A_VAR"]
    assert playback.eof is False
    assert playback.current_line == 3

    collected = []
    while not playback.eof:
        collected.extend(playback.iterate())
    assert [m.key for m in collected] == ["D_VAR"]
    assert playback.current_line == 4
    assert playback.iterate() == []


def test_messages_carry_values_and_clock_time(tmp_path):
    playback = _playback(tmp_path, clock=lambda: 42.0)
    playback.reset()
    playback.set_tick_interval(1.0)
    by_key = {m.key: m for m in playback.iterate()}
    assert by_key["A_VAR"].data_type is DataType.DOUBLE
    assert by_key["A_VAR"].value == 1.0
    assert by_key["A_VAR"].source == "pA"
    assert by_key["B_VAR"].data_type is DataType.STRING
    assert by_key["B_VAR"].text == "hello"
    assert all(m.time == 42.0 for m in by_key.values())


def test_filter_suppresses_source(tmp_path):
    playback = _playback(tmp_path)
    playback.reset()
    playback.set_tick_interval(10.0)
    playback.filter("pB", False)
    keys = [m.key for m in playback.iterate()]
    assert keys == ["C_VAR", "A_VAR"]
    assert playback.current_line == 4


def test_filter_wanted_and_clear(tmp_path):
    playback = _playback(tmp_path)
    playback.filter("pA", False)
    playback.filter("pB", False)
    playback.filter("pA", True)
    assert playback.source_filter == {"pB"}
    playback.clear_filter()
    assert playback.source_filter == set()


def test_goto_time_past_end(tmp_path):
    playback = _playback(tmp_path)
    assert playback.goto_time(10.0) is False


def test_waits_for_lagging_client(tmp_path):
    playback = _playback(tmp_path, clock=lambda: 10.0)
    playback.reset()
    playback.set_tick_interval(1.0)
    playback.set_last_time_processed(0.0)
    assert playback.iterate() == []
    assert playback.waiting_for_client is True
    assert playback.status().startswith("Waiting for Client CATCHUP")
    assert playback.client_lag == 10.0


def test_status_when_playing(tmp_path):
    playback = _playback(tmp_path, clock=lambda: 1.0)
    playback.reset()
    playback.set_last_time_processed(0.5)
    playback.iterate()
    assert playback.waiting_for_client is False
    assert playback.status() == "Playing just fine Client Lag 0.5"


def test_goto_time_clears_client_wait(tmp_path):
    playback = _playback(tmp_path, clock=lambda: 10.0)
    playback.reset()
    playback.set_last_time_processed(0.0)
    playback.iterate()
    assert playback.goto_time(0.0) is True
    assert playback.waiting_for_client is False
    assert playback.last_client_processed == -1.0


def test_entry_sort_key():
    entry = PlaybackEntry(time=1.0, what="X", who="p", text="b")
    other = PlaybackEntry(time=1.0, what="Y", who="p", text="a")
    assert sorted([entry, other], key=lambda e: e.sort_key) == [other, entry]