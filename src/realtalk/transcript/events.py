"""Typed events consumed by the transcript reconciler.

Wire frames are decoded into a closed set of event models. Several wire
``type`` values map onto the same event model because the peer protocol has
renamed some events over time (e.g. ``response.text.delta`` and
``response.output_text.delta``).
"""

import json
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .extraction import extract_response_text, extract_text, normalize_delta
from .models import Role

DEFAULT_ERROR_MESSAGE = "The agent returned an error."


class MalformedEventError(ValueError):
    """A frame could not be decoded into a known event."""

    def __init__(self, message: str, event_type: str | None = None):
        super().__init__(message)
        self.event_type = event_type


class TranscriptEvent(BaseModel):
    """Base class for all reconciler events."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(description="Wire type the event was decoded from")


class ResponseCreated(TranscriptEvent):
    response_id: str


class ResponseTextDelta(TranscriptEvent):
    response_id: str
    delta: str = ""


class AudioTranscriptDelta(ResponseTextDelta):
    pass


class ContentPartDelta(ResponseTextDelta):
    pass


class ResponseCompleted(TranscriptEvent):
    """``response.completed`` / ``response.done``: explicit finalize."""

    response_id: str
    final_text: str = ""


class AudioTranscriptDone(TranscriptEvent):
    response_id: str
    transcript: str = ""


class ContentPartDone(TranscriptEvent):
    response_id: str
    text: str = ""


class OutputItemDone(TranscriptEvent):
    response_id: str
    text: str = ""


class ResponseError(TranscriptEvent):
    message: str = DEFAULT_ERROR_MESSAGE


class ConversationItemCreated(TranscriptEvent):
    item_id: str
    role: Role | None = None
    text: str = ""


class InputAudioTranscriptionDelta(TranscriptEvent):
    item_id: str
    delta: str = ""


class InputAudioTranscriptionDone(TranscriptEvent):
    item_id: str
    transcript: str = ""


class ConversationItemCompleted(TranscriptEvent):
    item_id: str
    role: Role | None = None
    text: str = ""


def _require(value: Any, name: str, event_type: str) -> str:
    if not isinstance(value, str) or not value:
        raise MalformedEventError(f"{event_type}: missing {name}", event_type=event_type)
    return value


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _response_id(data: Mapping[str, Any], event_type: str) -> str:
    response_id = data.get("response_id") or _mapping(data.get("response")).get("id")
    return _require(response_id, "response_id", event_type)


def _item(data: Mapping[str, Any], event_type: str) -> Mapping[str, Any]:
    item = data.get("item")
    if not isinstance(item, Mapping):
        raise MalformedEventError(f"{event_type}: missing item", event_type=event_type)
    return item


def _role(value: Any) -> Role | None:
    try:
        return Role(value)
    except ValueError:
        return None


def _first_present(data: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if data.get(name) is not None:
            return data[name]
    return None


def _response_created(t: str, data: Mapping[str, Any]) -> TranscriptEvent:
    response_id = _mapping(data.get("response")).get("id") or data.get("response_id")
    return ResponseCreated(type=t, response_id=_require(response_id, "response.id", t))


def _text_delta(model: type[ResponseTextDelta]) -> Callable[[str, Mapping[str, Any]], TranscriptEvent]:
    def build(t: str, data: Mapping[str, Any]) -> TranscriptEvent:
        fragment = _first_present(data, "delta", "part", "text")
        return model(type=t, response_id=_response_id(data, t), delta=normalize_delta(fragment))
    return build


def _response_completed(t: str, data: Mapping[str, Any]) -> TranscriptEvent:
    response = _mapping(data.get("response"))
    response_id = response.get("id") or data.get("response_id")
    return ResponseCompleted(
        type=t,
        response_id=_require(response_id, "response.id", t),
        final_text=extract_response_text(response),
    )


def _audio_transcript_done(t: str, data: Mapping[str, Any]) -> TranscriptEvent:
    return AudioTranscriptDone(
        type=t,
        response_id=_response_id(data, t),
        transcript=normalize_delta(data.get("transcript")),
    )


def _content_part_done(t: str, data: Mapping[str, Any]) -> TranscriptEvent:
    fragment = _first_present(data, "part", "text", "delta")
    return ContentPartDone(type=t, response_id=_response_id(data, t), text=normalize_delta(fragment))


def _output_item_done(t: str, data: Mapping[str, Any]) -> TranscriptEvent:
    return OutputItemDone(
        type=t,
        response_id=_response_id(data, t),
        text=extract_text(_item(data, t)),
    )


def _response_error(t: str, data: Mapping[str, Any]) -> TranscriptEvent:
    message = _mapping(data.get("error")).get("message")
    if not isinstance(message, str) or not message:
        message = DEFAULT_ERROR_MESSAGE
    return ResponseError(type=t, message=message)


def _item_created(t: str, data: Mapping[str, Any]) -> TranscriptEvent:
    item = _item(data, t)
    return ConversationItemCreated(
        type=t,
        item_id=_require(item.get("id"), "item.id", t),
        role=_role(item.get("role")),
        text=extract_text(item),
    )


def _transcription_delta(t: str, data: Mapping[str, Any]) -> TranscriptEvent:
    return InputAudioTranscriptionDelta(
        type=t,
        item_id=_require(data.get("item_id"), "item_id", t),
        delta=normalize_delta(data.get("delta")),
    )


def _transcription_done(t: str, data: Mapping[str, Any]) -> TranscriptEvent:
    return InputAudioTranscriptionDone(
        type=t,
        item_id=_require(data.get("item_id"), "item_id", t),
        transcript=normalize_delta(data.get("transcript")),
    )


def _item_completed(t: str, data: Mapping[str, Any]) -> TranscriptEvent:
    item = _item(data, t)
    return ConversationItemCompleted(
        type=t,
        item_id=_require(item.get("id"), "item.id", t),
        role=_role(item.get("role")),
        text=extract_text(item),
    )


# Wire type -> event builder
EVENT_BUILDERS: dict[str, Callable[[str, Mapping[str, Any]], TranscriptEvent]] = {
    "response.created": _response_created,
    "response.output_text.delta": _text_delta(ResponseTextDelta),
    "response.text.delta": _text_delta(ResponseTextDelta),
    "response.completed": _response_completed,
    "response.done": _response_completed,
    "response.audio_transcript.delta": _text_delta(AudioTranscriptDelta),
    "response.output_audio_transcript.delta": _text_delta(AudioTranscriptDelta),
    "response.audio_transcript.done": _audio_transcript_done,
    "response.output_audio_transcript.done": _audio_transcript_done,
    "response.content_part.delta": _text_delta(ContentPartDelta),
    "response.content_part.added": _text_delta(ContentPartDelta),
    "response.content_part.done": _content_part_done,
    "response.output_text.done": _content_part_done,
    "response.text.done": _content_part_done,
    "response.output_item.done": _output_item_done,
    "response.error": _response_error,
    "error": _response_error,
    "conversation.item.created": _item_created,
    "conversation.item.added": _item_created,
    "conversation.item.input_audio_transcription.delta": _transcription_delta,
    "conversation.item.input_audio_transcription.done": _transcription_done,
    "conversation.item.input_audio_transcription.completed": _transcription_done,
    "conversation.item.completed": _item_completed,
    "conversation.item.done": _item_completed,
}


def decode_frame(frame: str | bytes | Mapping[str, Any]) -> Mapping[str, Any]:
    """Decode a data channel frame into a JSON object.

    Raises:
        MalformedEventError: If the frame is not a JSON object with a type
    """
    if isinstance(frame, Mapping):
        data = frame
    else:
        try:
            data = json.loads(frame)
        except (TypeError, ValueError, RecursionError) as e:
            raise MalformedEventError(f"Frame is not valid JSON: {e}") from e

    if not isinstance(data, Mapping):
        raise MalformedEventError(f"Frame is not a JSON object: {type(data).__name__}")

    event_type = data.get("type")
    if not isinstance(event_type, str) or not event_type:
        raise MalformedEventError("Frame has no type discriminator")
    return data


def parse_event(frame: str | bytes | Mapping[str, Any]) -> TranscriptEvent | None:
    """Decode a frame into a typed event.

    Args:
        frame: Raw text frame or an already decoded mapping

    Returns:
        The typed event, or None if the event type is not handled

    Raises:
        MalformedEventError: If the frame or its payload is malformed
    """
    data = decode_frame(frame)
    event_type = data["type"]
    builder = EVENT_BUILDERS.get(event_type)
    if builder is None:
        return None

    try:
        return builder(event_type, data)
    except ValidationError as e:
        raise MalformedEventError(f"{event_type}: {e}", event_type=event_type) from e
    except RecursionError as e:
        raise MalformedEventError(f"{event_type}: payload nested too deeply", event_type=event_type) from e
