"""Tests for grammy.web.ws.protocol."""

from __future__ import annotations

import pytest

from grammy.engine.render import annotate
from grammy.types import Suggestion
from grammy.web.ws.protocol import (
    AcceptMessage,
    CaretMessage,
    EditMessage,
    HoverMessage,
    RecheckMessage,
    caret_message,
    error_message,
    parse_client_message,
    preview_message,
    render_message,
    status_message,
    suggestions_message,
)

SUGGESTION = Suggestion(id="s1", message="verb", offset=2, length=3, original="has", replacement="have")


# ---------------------------------------------------------------------------
# parse_client_message
# ---------------------------------------------------------------------------


class TestParseEditMessage:
    def test_edit_with_caret(self):
        msg = parse_client_message({"type": "edit", "text": "I has", "caret": 5})
        assert isinstance(msg, EditMessage)
        assert msg.text == "I has"
        assert msg.caret == 5

    def test_edit_without_caret(self):
        msg = parse_client_message({"type": "edit", "text": ""})
        assert isinstance(msg, EditMessage)
        assert msg.caret is None

    def test_edit_with_non_string_text(self):
        assert parse_client_message({"type": "edit", "text": 42}) is None

    @pytest.mark.parametrize("caret", ["5", 1.5, True])
    def test_edit_with_bad_caret_ignores_it(self, caret):
        msg = parse_client_message({"type": "edit", "text": "x", "caret": caret})
        assert isinstance(msg, EditMessage)
        assert msg.caret is None


class TestParseOtherMessages:
    def test_caret(self):
        msg = parse_client_message({"type": "caret", "offset": 3})
        assert isinstance(msg, CaretMessage)
        assert msg.offset == 3

    def test_caret_without_offset(self):
        assert parse_client_message({"type": "caret"}) is None

    def test_accept(self):
        msg = parse_client_message({"type": "accept", "id": "s1"})
        assert isinstance(msg, AcceptMessage)
        assert msg.id == "s1"

    def test_hover(self):
        msg = parse_client_message({"type": "hover", "id": "s1"})
        assert isinstance(msg, HoverMessage)
        assert msg.id == "s1"

    def test_recheck(self):
        assert isinstance(parse_client_message({"type": "recheck"}), RecheckMessage)

    def test_unknown_type(self):
        assert parse_client_message({"type": "delete_everything"}) is None

    def test_missing_type(self):
        assert parse_client_message({}) is None


# ---------------------------------------------------------------------------
# Server message builders
# ---------------------------------------------------------------------------


class TestBuilders:
    def test_render_message(self):
        annotated = annotate("I has a cat", [SUGGESTION])
        assert render_message(annotated) == {
            "type": "render",
            "runs": [
                {"text": "I ", "id": None},
                {"text": "has", "id": "s1"},
                {"text": " a cat", "id": None},
            ],
        }

    def test_caret_message(self):
        annotated = annotate("I has a cat", [SUGGESTION])
        msg = caret_message(4, annotated.locate(4))
        assert msg == {"type": "caret", "offset": 4, "run": 1, "runOffset": 2}

    def test_status_message(self):
        assert status_message("Ready") == {"type": "status", "text": "Ready"}

    def test_suggestions_message(self):
        msg = suggestions_message((SUGGESTION,))
        assert msg["type"] == "suggestions"
        [item] = msg["items"]
        assert item["id"] == "s1"
        assert item["offset"] == 2
        assert item["replacement"] == "have"

    def test_preview_message(self):
        assert preview_message(SUGGESTION)["suggestion"]["original"] == "has"
        assert preview_message(None) == {"type": "preview", "suggestion": None}

    def test_error_message(self):
        assert error_message("Invalid JSON") == {"type": "error", "message": "Invalid JSON"}
