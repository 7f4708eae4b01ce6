from datetime import timezone

import pytest

from moostools.controller import Mode, PlaybackController, main
from moostools.messages import Message

LOG = """%% LOG FILE
0.5 NAV_X pNav 1.5
0.6 NAV_Y pNav 2.5
1.0 STATUS pHelm running
"""


class FakeClient:
    def __init__(self, connected=True, mail=None):
        self.connected = connected
        self.mail = list(mail or [])
        self.posted = []

    def is_connected(self):
        return self.connected

    def fetch(self):
        mail, self.mail = self.mail, []
        return mail

    def post(self, message):
        self.posted.append(message)


@pytest.fixture
def log_path(tmp_path):
    path = tmp_path / "run.alog"
    path.write_text(LOG)
    return path


def test_open_lists_sources_all_wanted(log_path):
    controller = PlaybackController()
    sources = controller.open(log_path)
    assert sources == ["pHelm", "pNav"]
    assert controller.wanted == {"pHelm": True, "pNav": True}


def test_open_missing_file_raises(tmp_path):
    with pytest.raises(OSError):
        PlaybackController().open(tmp_path / "missing.alog")


def test_play_posts_everything_then_stops(log_path):
    client = FakeClient()
    controller = PlaybackController(client=client, clock=lambda: 10.0)
    controller.open(log_path)
    controller.set_warp(1000)
    controller.play()
    assert controller.mode is Mode.PLAYING
    controller.tick()
    keys = {m.key for m in client.posted}
    assert {"NAV_X", "NAV_Y", "STATUS"} <= keys
    controller.tick()
    assert controller.mode is Mode.STOPPED


def test_filtered_source_not_posted(log_path):
    client = FakeClient()
    controller = PlaybackController(client=client, clock=lambda: 10.0)
    controller.open(log_path)
    controller.set_sources({"pNav": False})
    controller.set_warp(1000)
    controller.play()
    output = controller.tick()
    keys = [m.key for m in output]
    assert "STATUS" in keys
    assert "NAV_X" not in keys and "NAV_Y" not in keys


def test_disconnected_client_gets_nothing(log_path):
    client = FakeClient(connected=False)
    controller = PlaybackController(client=client, clock=lambda: 10.0)
    controller.open(log_path)
    controller.set_warp(1000)
    controller.play()
    output = controller.tick()
    assert output
    assert client.posted == []


def test_choke_message_sets_client_time(log_path):
    controller = PlaybackController(clock=lambda: 100.0)
    controller.open(log_path)
    controller.on_new_mail([Message(key="OTHER", value=1.0), Message(key="PLAYBACK_CHOKE", value=50.0)])
    assert controller.playback.last_client_processed == 50.0


def test_slow_client_makes_playback_wait(log_path):
    client = FakeClient(mail=[Message(key="PLAYBACK_CHOKE", value=50.0)])
    controller = PlaybackController(client=client, clock=lambda: 100.0)
    controller.open(log_path)
    controller.set_warp(1000)
    controller.play()
    output = controller.tick()
    assert output == []
    assert controller.playback.waiting_for_client
    assert controller.playback.status().startswith("Waiting for Client CATCHUP")


def test_rewind_returns_to_start(log_path):
    controller = PlaybackController(clock=lambda: 10.0)
    controller.open(log_path)
    controller.set_warp(1000)
    controller.play()
    controller.tick()
    assert controller.rewind() is True
    assert controller.mode is Mode.STOPPED
    assert controller.playback.current_line == 0
    assert controller.progress() == pytest.approx(0.0, abs=1e-3)


def test_progress_ends_seek_time(log_path):
    controller = PlaybackController()
    controller.open(log_path)
    assert controller.set_progress(0) is True
    assert controller.seek_time == controller.playback.start_time()
    assert controller.set_progress(100) is True
    assert controller.seek_time == controller.playback.finish_time()


def test_seek_moves_to_seek_time(log_path):
    controller = PlaybackController()
    controller.open(log_path)
    controller.set_progress(100)
    controller.play()
    assert controller.seek() is True
    assert controller.mode is Mode.STOPPED
    assert controller.playback.current_line == len(controller.playback) - 1


def test_warp_scales_tick_interval():
    controller = PlaybackController(timer_interval=0.01)
    controller.set_warp(3)
    assert controller.playback.tick_interval == pytest.approx(0.03)


def test_title_reports_connection():
    assert PlaybackController().title() == "uPlayback : LOCALHOST:9000 Offline"
    assert PlaybackController().title(True) == "uPlayback : LOCALHOST:9000 Online"
    online = PlaybackController(client=FakeClient(), host="db", port=9001)
    assert online.title() == "uPlayback : db:9001 Online"


def test_clock_label_format():
    controller = PlaybackController(tz=timezone.utc)
    controller.playback.last_message_time = 0.0
    assert controller.clock_label() == "00:00.00"
    controller.playback.last_message_time = 3725.4
    assert controller.clock_label() == "01:02.05"


def test_main_prints_messages(log_path, capsys):
    assert main([str(log_path), "--fast", "--warp", "1000"]) == 0
    out = capsys.readouterr().out
    assert "NAV_X pNav" in out
    assert "STATUS pHelm running" in out


def test_main_excludes_source(log_path, capsys):
    assert main([str(log_path), "--fast", "--warp", "1000", "--exclude", "pNav"]) == 0
    out = capsys.readouterr().out
    assert "NAV_X" not in out
    assert "STATUS pHelm running" in out


def test_main_missing_file_fails(tmp_path, capsys):
    assert main([str(tmp_path / "none.alog"), "--fast"]) == 1
    assert "Failed to initialise playback" in capsys.readouterr().err