import pytest
from typer.testing import CliRunner

from qbit_adder import __version__
from qbit_adder.cli import app as cli_app
from qbit_adder.storage.state_store import RecentSavePaths, StateStore

from .conftest import make_torrent

runner = CliRunner()


@pytest.fixture(autouse=True)
def config_dir(tmp_path, monkeypatch):
    directory = tmp_path / "config"
    monkeypatch.setattr(cli_app, "CONFIG_DIR", directory)
    return directory


def test_version():
    result = runner.invoke(cli_app.app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_info_lists_files(tmp_path):
    path = tmp_path / "pack.torrent"
    path.write_bytes(make_torrent(name="pack", files=[(["a.txt"], 10), (["b", "c.txt"], 20)]))

    result = runner.invoke(cli_app.app, ["info", str(path)])

    assert result.exit_code == 0, result.output
    assert "pack" in result.output
    assert "a.txt" in result.output
    assert "b/c.txt" in result.output
    assert "30 B" in result.output


def test_info_on_invalid_file(tmp_path):
    path = tmp_path / "broken.torrent"
    path.write_bytes(b"l4:spam")

    result = runner.invoke(cli_app.app, ["info", str(path)])

    assert result.exit_code == 1
    assert "ParseError" in result.output


def test_info_on_missing_file(tmp_path):
    result = runner.invoke(cli_app.app, ["info", str(tmp_path / "nope.torrent")])

    assert result.exit_code == 1
    assert "TorrentFileNotFoundError" in result.output


def test_recent_lists_paths(config_dir):
    recent = RecentSavePaths(StateStore(config_dir))
    recent.add("/media/movies")
    recent.add("/media/tv")

    result = runner.invoke(cli_app.app, ["recent"])

    assert result.exit_code == 0
    assert result.output.index("/media/tv") < result.output.index("/media/movies")


def test_recent_when_empty():
    result = runner.invoke(cli_app.app, ["recent"])
    assert result.exit_code == 0
    assert "No save paths" in result.output


def test_validate_defaults():
    result = runner.invoke(cli_app.app, ["validate"])
    assert result.exit_code == 0
    assert "127.0.0.1:8080" in result.output


def test_validate_reports_invalid_config(config_dir):
    config_dir.mkdir(parents=True)
    (config_dir / "config.ini").write_text("[DEFAULT]\nurl = nowhere\n")

    result = runner.invoke(cli_app.app, ["validate"])

    assert result.exit_code == 1
    assert "invalid" in result.output


def test_add_rejects_rename_for_several_files(tmp_path):
    first = tmp_path / "a.torrent"
    second = tmp_path / "b.torrent"
    first.write_bytes(make_torrent(name="a"))
    second.write_bytes(make_torrent(name="b"))

    result = runner.invoke(
        cli_app.app, ["add", str(first), str(second), "--rename", "x"]
    )

    assert result.exit_code == 1


def test_add_rejects_bad_priorities(tmp_path):
    path = tmp_path / "a.torrent"
    path.write_bytes(make_torrent())

    result = runner.invoke(cli_app.app, ["add", str(path), "--priorities", "1,x"])

    assert result.exit_code == 2


def test_status_shows_saved_state(config_dir):
    StateStore(config_dir).user_disconnected = True

    result = runner.invoke(cli_app.app, ["status"])

    assert result.exit_code == 0
    assert "Disconnected by user" in result.output


def test_disconnect_sets_flag(config_dir):
    result = runner.invoke(cli_app.app, ["disconnect"])

    assert result.exit_code == 0
    assert StateStore(config_dir).user_disconnected
