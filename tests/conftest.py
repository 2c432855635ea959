"""
Shared fixtures for the test suite.
"""

import os
import tempfile

# Keep module-level config loading away from the working directory
_TEST_ROOT = tempfile.mkdtemp(prefix="linkgrab-tests-")
os.environ.setdefault("LINKGRAB_CONFIG", os.path.join(_TEST_ROOT, "config.json"))
os.environ.setdefault("DOWNLOAD_DIR", os.path.join(_TEST_ROOT, "downloads"))

import pytest

from linkgrab import security


@pytest.fixture
def temp_dir(tmp_path):
    return str(tmp_path)


@pytest.fixture(autouse=True)
def reset_state():
    """Fresh pause switch and sessions for every test."""
    security.pause_state.resume()
    security.sessions._sessions.clear()
    yield
    security.pause_state.resume()
    security.sessions._sessions.clear()


@pytest.fixture
def download_dir(tmp_path, monkeypatch):
    """Points every module at a temporary download directory."""
    from linkgrab import cleanup, telegram_callbacks, telegram_commands

    path = tmp_path / "downloads"
    path.mkdir()
    for module in (cleanup, telegram_callbacks, telegram_commands):
        monkeypatch.setattr(module, "DOWNLOAD_PATH", str(path))
    return path


@pytest.fixture
def sample_video_info():
    mb = 1024 * 1024
    return {
        "title": "Sample Video",
        "duration": 120,
        "formats": [
            {"format_id": "18", "ext": "mp4", "resolution": "640x360", "format_note": "360p",
             "vcodec": "avc1", "acodec": "mp4a", "filesize": None},
            {"format_id": "140", "ext": "m4a", "resolution": "audio only", "format_note": "medium",
             "vcodec": "none", "acodec": "mp4a", "filesize": 3 * mb},
            {"format_id": "135", "ext": "mp4", "resolution": "854x480", "format_note": "480p",
             "vcodec": "avc1", "acodec": "none", "filesize": 10 * mb},
            {"format_id": "137", "ext": "mp4", "resolution": "1920x1080", "format_note": "1080p",
             "vcodec": "avc1", "acodec": "none", "filesize": 50 * mb},
            {"format_id": "136", "ext": "mp4", "resolution": "1280x720", "format_note": "720p",
             "vcodec": "avc1", "acodec": "none", "filesize": 20 * mb},
        ],
    }


def make_youtube_dl(info=None, error=None, captured=None):
    """Builds a yt_dlp.YoutubeDL replacement returning info or raising error."""
    captured = {} if captured is None else captured

    class MockYoutubeDL:
        def __init__(self, opts):
            captured["opts"] = opts

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            return False

        def extract_info(self, url, download):
            captured.setdefault("calls", []).append((url, download))
            if error is not None:
                raise error
            return info

        def prepare_filename(self, info_dict):
            template = captured["opts"]["outtmpl"]
            return template.replace("%(title).100s", info_dict["title"]).replace("%(ext)s", info_dict["ext"])

    return MockYoutubeDL


@pytest.fixture
def youtube_dl_factory():
    return make_youtube_dl
