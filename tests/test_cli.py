"""CLI commands via click's test runner."""

import json

import pytest
from click.testing import CliRunner
from rich.console import Console

from nexus_chat.cli import main as cli_main
from nexus_chat.cli.render import StateRenderer, format_message
from nexus_chat.models.chat import ChatMessage, ChatState, Participant


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "nexus" / "config.json"
    monkeypatch.setattr(cli_main, "CONFIG_FILE", path)
    monkeypatch.delenv(cli_main.SERVER_URL_ENV, raising=False)
    return path


def test_login_status_logout(config_file):
    runner = CliRunner()
    result = runner.invoke(cli_main.main, ["login", "alice", "--server", "ws://chat.example:9000"])
    assert result.exit_code == 0
    assert json.loads(config_file.read_text()) == {"username": "alice", "server_url": "ws://chat.example:9000"}

    result = runner.invoke(cli_main.main, ["status"])
    assert "alice" in result.output
    assert "ws://chat.example:9000" in result.output

    result = runner.invoke(cli_main.main, ["logout"])
    assert result.exit_code == 0
    assert json.loads(config_file.read_text()) == {}
    result = runner.invoke(cli_main.main, ["status"])
    assert "Not logged in" in result.output


def test_login_rejects_blank_username(config_file):
    result = CliRunner().invoke(cli_main.main, ["login", "  "])
    assert result.exit_code != 0
    assert not config_file.exists()


def test_server_url_precedence(config_file, monkeypatch):
    assert cli_main._server_url() == "ws://127.0.0.1:8080"
    cli_main._save_config({"server_url": "ws://stored"})
    assert cli_main._server_url() == "ws://stored"
    monkeypatch.setenv(cli_main.SERVER_URL_ENV, "ws://env")
    assert cli_main._server_url() == "ws://env"
    assert cli_main._server_url("ws://option") == "ws://option"


def test_chat_requires_username(config_file):
    result = CliRunner().invoke(cli_main.main, ["chat"])
    assert result.exit_code == 1
    assert "nexus login" in result.output


def test_send_one_shot(config_file, fake_server):
    fake_server.roster = ["alice", "bob"]
    cli_main._save_config({"username": "alice"})
    result = CliRunner().invoke(cli_main.main, ["send", "hello all", "--json"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output.strip().splitlines()[-1]) == {
        "sent": True, "roster": ["alice", "bob"], "error": None,
    }
    frames = [json.loads(t) for t in fake_server.socket.sent]
    assert [f["messageType"] for f in frames] == ["register", "message"]
    assert frames[1]["data"] == "hello all"


def test_send_without_roster_fails(config_file, fake_server):
    result = CliRunner().invoke(cli_main.main, ["send", "hi", "-u", "alice", "--timeout", "0.05"])
    assert result.exit_code == 1
    assert [json.loads(t)["messageType"] for t in fake_server.socket.sent] == ["register"]


def test_renderer_prints_only_changes():
    console = Console(record=True, width=120)
    render = StateRenderer(console)
    roster = (Participant.named("alice"), Participant.named("bob"))
    hi = ChatMessage(sender="bob", body="hi")
    render(ChatState(roster=roster, connected=True))
    render(ChatState(roster=roster, connected=True, transcript=(hi,)))
    render(ChatState(roster=roster, connected=False, transcript=(hi,), last_error="room full [42]"))
    out = console.export_text()
    assert "connected" in out
    assert "2 online: alice, bob" in out
    assert out.count("bob: hi") == 1
    assert "ERROR: room full [42]" in out
    assert out.count("2 online") == 1


def test_format_message_marks_images_and_timestamps():
    state = ChatState()
    msg = ChatMessage(sender="carol", body="https://example.com/a.gif", sent_at="12:00")
    text = format_message(msg, state.participant_for("carol")).plain
    assert text == "[12:00] carol: [image] https://example.com/a.gif"
