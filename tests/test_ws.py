"""End-to-end tests for the /ws editing session."""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from grammy.checker.rules import RuleChecker
from grammy.drafts import DraftStore
from grammy.web.app import create_app
from grammy.web.config import Config

TEXT = "I has a apple."


@pytest.fixture
def config(tmp_path):
    return Config(
        debounce_ms=10,
        draft_path=str(tmp_path / "draft.json"),
        static_dir=str(tmp_path / "no-static"),
    )


@pytest.fixture
def client(config):
    with TestClient(create_app(config, RuleChecker())) as c:
        yield c


def receive_until(ws, predicate) -> tuple[list[dict], dict]:
    """Read messages until one satisfies ``predicate``; return (all, match)."""
    seen = []
    while True:
        msg = ws.receive_json()
        seen.append(msg)
        if predicate(msg):
            return seen, msg


def is_status(text: str):
    return lambda msg: msg == {"type": "status", "text": text}


def last_of(messages: list[dict], kind: str) -> dict:
    return [m for m in messages if m["type"] == kind][-1]


def test_connect_sends_initial_state(client):
    with client.websocket_connect("/ws") as ws:
        assert ws.receive_json() == {"type": "status", "text": "Ready"}
        assert ws.receive_json() == {"type": "render", "runs": []}
        assert ws.receive_json()["type"] == "caret"
        assert ws.receive_json() == {"type": "suggestions", "items": []}


def test_edit_produces_highlights(client):
    with client.websocket_connect("/ws") as ws:
        receive_until(ws, lambda m: m["type"] == "suggestions")
        ws.send_json({"type": "edit", "text": TEXT, "caret": 5})

        seen, _ = receive_until(ws, is_status("2 suggestion(s)"))
        assert {"type": "status", "text": "Checking..."} in seen
        render = last_of(seen, "render")
        assert [run["text"] for run in render["runs"]] == ["I ", "has", " ", "a", " apple."]
        items = last_of(seen, "suggestions")["items"]
        assert [run["id"] for run in render["runs"] if run["id"]] == [item["id"] for item in items]
        assert last_of(seen, "caret")["offset"] == 5


def test_accept_applies_and_saves_draft(client, config):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "edit", "text": TEXT})
        seen, _ = receive_until(ws, is_status("2 suggestion(s)"))
        first = last_of(seen, "suggestions")["items"][0]

        ws.send_json({"type": "accept", "id": first["id"]})
        seen, _ = receive_until(ws, is_status("1 suggestion(s)"))
        render = last_of(seen, "render")
        assert "".join(run["text"] for run in render["runs"]) == "I have a apple."
        [remaining] = last_of(seen, "suggestions")["items"]
        assert remaining["offset"] == 7

    assert DraftStore(config.draft_path).load() == "I have a apple."


def test_accept_unknown_id(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "accept", "id": "nope"})
        receive_until(ws, is_status("Suggestion not found"))


def test_hover_sends_preview(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "edit", "text": TEXT})
        seen, _ = receive_until(ws, is_status("2 suggestion(s)"))
        first = last_of(seen, "suggestions")["items"][0]

        ws.send_json({"type": "hover", "id": first["id"]})
        _, preview = receive_until(ws, lambda m: m["type"] == "preview")
        assert preview["suggestion"]["replacement"] == "have"


def test_invalid_messages_report_errors(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("not json")
        _, error = receive_until(ws, lambda m: m["type"] == "error")
        assert error["message"] == "Invalid JSON"

        ws.send_json({"type": "bogus"})
        _, error = receive_until(ws, lambda m: m["type"] == "error")
        assert error["message"] == "Invalid message: 'bogus'"


def test_draft_is_restored_and_checked(config):
    with open(config.draft_path, "w", encoding="utf-8") as f:
        json.dump({"text": TEXT}, f)

    with TestClient(create_app(config, RuleChecker())) as client:
        with client.websocket_connect("/ws") as ws:
            seen, _ = receive_until(ws, is_status("2 suggestion(s)"))
            first_render = next(m for m in seen if m["type"] == "render")
            assert first_render["runs"] == [{"text": TEXT, "id": None}]


def test_clean_text_reports_all_good(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "edit", "text": "I have an apple."})
        receive_until(ws, is_status("All good!"))


def test_recheck(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "edit", "text": TEXT})
        receive_until(ws, is_status("2 suggestion(s)"))
        ws.send_json({"type": "recheck"})
        seen, _ = receive_until(ws, is_status("2 suggestion(s)"))
        assert {"type": "status", "text": "Checking..."} in seen
