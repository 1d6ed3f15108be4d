"""WebSocket message protocol definitions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from grammy.engine.render import AnnotatedText, CaretPosition
from grammy.types import Suggestion

# --- Client -> Server messages ---


@dataclass
class EditMessage:
    """The user changed the text. ``caret`` is a linear offset, if known."""

    type: str = "edit"
    text: str = ""
    caret: int | None = None


@dataclass
class CaretMessage:
    type: str = "caret"
    offset: int = 0


@dataclass
class AcceptMessage:
    type: str = "accept"
    id: str = ""


@dataclass
class HoverMessage:
    type: str = "hover"
    id: str = ""


@dataclass
class RecheckMessage:
    type: str = "recheck"


ClientMessage = EditMessage | CaretMessage | AcceptMessage | HoverMessage | RecheckMessage


def _int_or_none(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def parse_client_message(data: dict[str, Any]) -> ClientMessage | None:
    """Parse a raw dict into a typed client message."""
    msg_type = data.get("type", "")
    match msg_type:
        case "edit":
            text = data.get("text", "")
            if not isinstance(text, str):
                return None
            return EditMessage(text=text, caret=_int_or_none(data.get("caret")))
        case "caret":
            offset = _int_or_none(data.get("offset"))
            return CaretMessage(offset=offset) if offset is not None else None
        case "accept":
            return AcceptMessage(id=str(data.get("id", "")))
        case "hover":
            return HoverMessage(id=str(data.get("id", "")))
        case "recheck":
            return RecheckMessage()
        case _:
            return None


# --- Server -> Client message builders ---


def render_message(annotated: AnnotatedText) -> dict[str, Any]:
    return {"type": "render", "runs": [run.to_dict() for run in annotated.runs]}


def caret_message(offset: int, position: CaretPosition) -> dict[str, Any]:
    return {
        "type": "caret",
        "offset": offset,
        "run": position.run_index,
        "runOffset": position.run_offset,
    }


def status_message(text: str) -> dict[str, Any]:
    return {"type": "status", "text": text}


def suggestions_message(items: tuple[Suggestion, ...] | list[Suggestion]) -> dict[str, Any]:
    return {"type": "suggestions", "items": [s.model_dump(mode="json") for s in items]}


def preview_message(suggestion: Suggestion | None) -> dict[str, Any]:
    return {
        "type": "preview",
        "suggestion": suggestion.model_dump(mode="json") if suggestion is not None else None,
    }


def error_message(message: str) -> dict[str, Any]:
    return {"type": "error", "message": message}
