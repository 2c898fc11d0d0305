import json

import pytest

from camquad.exceptions import ConfigLoadError, ConfigSaveError
from camquad.models import config_manager as config_module
from camquad.models.camera import Camera
from camquad.models.config_manager import ConfigManager


def test_missing_file_gives_defaults(config_path):
    manager = ConfigManager(config_path)
    config = manager.load()

    assert config["cameras"] == []
    assert manager.get_cameras() == []
    assert manager.get_scan_port() == 554
    assert manager.get_scan_timeout() == pytest.approx(0.3)
    assert manager.get_max_cameras() == 4
    assert manager.get_ffmpeg_path() == "ffmpeg"
    assert manager.get_file_logging_enabled() is False
    assert not config_path.exists()


def test_cameras_survive_round_trip(config_path, camera):
    no_lq = Camera.create(ip="10.0.0.9", rtsp_path="/main")
    ConfigManager(config_path).set_cameras([camera, no_lq])

    reloaded = ConfigManager(config_path)
    reloaded.load()
    cameras = reloaded.get_cameras()

    assert cameras == [camera, no_lq]
    assert cameras[1].lq_rtsp_path == "/main"


def test_record_without_lq_path_defaults_on_load(config_path):
    config_path.parent.mkdir(parents=True)
    config_path.write_text(
        json.dumps({"cameras": [{"ip": "10.0.0.5", "rtsp_path": "/hq"}]}), encoding="utf-8"
    )

    manager = ConfigManager(config_path)
    manager.load()
    (camera,) = manager.get_cameras()

    assert camera.rtsp_path == "/hq"
    assert camera.lq_rtsp_path == "/hq"


def test_invalid_records_are_skipped(config_path):
    config_path.parent.mkdir(parents=True)
    config_path.write_text(
        json.dumps({"cameras": [{"ip": ""}, "junk", {"ip": "10.0.0.7"}]}), encoding="utf-8"
    )

    manager = ConfigManager(config_path)
    manager.load()

    assert [c.ip for c in manager.get_cameras()] == ["10.0.0.7"]


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
def test_unreadable_config_raises(config_path, content):
    config_path.parent.mkdir(parents=True)
    config_path.write_text(content, encoding="utf-8")

    manager = ConfigManager(config_path)
    with pytest.raises(ConfigLoadError):
        manager.load()
    assert manager.config["cameras"] == []


def test_non_utf8_config_raises(config_path):
    config_path.parent.mkdir(parents=True)
    config_path.write_bytes(b'{"cameras":[{"ip":"10.0.0.5","username":"\xff\xfe"}]}')

    manager = ConfigManager(config_path)
    with pytest.raises(ConfigLoadError):
        manager.load()
    assert manager.config["cameras"] == []


def test_partial_preferences_are_merged_with_defaults(config_path):
    config_path.parent.mkdir(parents=True)
    config_path.write_text(
        json.dumps({"preferences": {"scan_subnet": "10.1.2.", "max_cameras": 9}}),
        encoding="utf-8",
    )

    manager = ConfigManager(config_path)
    manager.load()

    assert manager.get_scan_subnet() == "10.1.2"
    assert manager.get_max_cameras() == 4
    assert manager.get_scan_port() == 554


def test_scan_subnet_falls_back_to_local_interface(config_path, monkeypatch):
    monkeypatch.setattr(config_module, "default_scan_prefix", lambda: "172.16.5")
    manager = ConfigManager(config_path)
    manager.load()

    assert manager.get_scan_subnet() == "172.16.5"


def test_save_failure_raises(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")

    manager = ConfigManager(blocker / "cameras.json")
    with pytest.raises(ConfigSaveError):
        manager.save()


@pytest.mark.parametrize(
    "preferences",
    [
        {"scan_port": "rtsp", "scan_timeout_ms": "x", "max_cameras": "four"},
        {"scan_port": None, "scan_timeout_ms": None, "max_cameras": None},
        {"scan_port": [554], "scan_timeout_ms": {}, "max_cameras": [4]},
        {"scan_port": 0, "scan_timeout_ms": -5, "max_cameras": 0},
        {"scan_port": 70000, "scan_timeout_ms": 300, "max_cameras": 4},
    ],
)
def test_invalid_numeric_preferences_fall_back_to_defaults(config_path, preferences, caplog):
    config_path.parent.mkdir(parents=True)
    config_path.write_text(json.dumps({"preferences": preferences}), encoding="utf-8")

    manager = ConfigManager(config_path)
    manager.load()

    with caplog.at_level("WARNING", logger="camquad.models.config_manager"):
        assert manager.get_scan_port() == 554
        assert manager.get_scan_timeout() == pytest.approx(0.3)
        assert manager.get_max_cameras() == 4
    assert any("Invalid" in r.getMessage() for r in caplog.records)


def test_numeric_strings_are_accepted(config_path):
    config_path.parent.mkdir(parents=True)
    config_path.write_text(
        json.dumps({"preferences": {"scan_port": "8554", "scan_timeout_ms": "150", "max_cameras": "2"}}),
        encoding="utf-8",
    )

    manager = ConfigManager(config_path)
    manager.load()

    assert manager.get_scan_port() == 8554
    assert manager.get_scan_timeout() == pytest.approx(0.15)
    assert manager.get_max_cameras() == 2
