"""Streaming transcript reconciliation.

Folds the event stream of a realtime session into an insertion-ordered,
per-speaker message list. Hidden design decisions:
- how wire frames are decoded (see events.py)
- how messages are indexed by id
- how overlapping delta / replace / finalize events are merged
"""

import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from .events import (
    AudioTranscriptDelta,
    ContentPartDelta,
    AudioTranscriptDone,
    ContentPartDone,
    ConversationItemCompleted,
    ConversationItemCreated,
    InputAudioTranscriptionDelta,
    InputAudioTranscriptionDone,
    MalformedEventError,
    OutputItemDone,
    ResponseCompleted,
    ResponseCreated,
    ResponseError,
    ResponseTextDelta,
    TranscriptEvent,
    parse_event,
)
from .models import Message, MessageListDelta, Role, TranscriptState, utc_now

logger = logging.getLogger(__name__)


class TranscriptReconciler:
    """Reconciles realtime events into a stable message list.

    Events must be ingested one at a time in delivery order. The reconciler
    owns its state; renderers read it through :attr:`messages`, which
    returns a detached snapshot.

    Example:
        reconciler = TranscriptReconciler()
        for frame in frames:
            delta = reconciler.ingest(frame)
            if delta.changed:
                render(reconciler.messages)
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        """Initialize the reconciler.

        Args:
            clock: Source of message timestamps
        """
        self._clock = clock
        self._state = TranscriptState()
        self._handlers: dict[type[TranscriptEvent], Callable[[Any, MessageListDelta], None]] = {
            ResponseCreated: self._on_response_created,
            ResponseTextDelta: self._on_response_delta,
            AudioTranscriptDelta: self._on_response_delta,
            ContentPartDelta: self._on_response_delta,
            ResponseCompleted: self._on_response_completed,
            AudioTranscriptDone: self._on_response_replace,
            ContentPartDone: self._on_response_replace,
            OutputItemDone: self._on_response_replace,
            ResponseError: self._on_response_error,
            ConversationItemCreated: self._on_item_created,
            InputAudioTranscriptionDelta: self._on_transcription_delta,
            InputAudioTranscriptionDone: self._on_transcription_done,
            ConversationItemCompleted: self._on_item_completed,
        }

    @property
    def messages(self) -> tuple[Message, ...]:
        """Immutable snapshot of the current message list."""
        return self._state.snapshot()

    @property
    def error(self) -> str | None:
        """The most recent error reported by the peer."""
        return self._state.error

    def get(self, message_id: str) -> Message | None:
        """Get a copy of the message with the given id."""
        message = self._state.get(message_id)
        return message.model_copy() if message is not None else None

    def clear_error(self) -> None:
        self._state.error = None

    def reset(self) -> None:
        """Drop all messages and the error (disconnect / reconnect)."""
        self._state = TranscriptState()

    def ingest(self, event: str | bytes | Mapping[str, Any] | TranscriptEvent) -> MessageListDelta:
        """Fold one event into the message list.

        Malformed frames are logged and dropped; unknown event types are
        ignored. Neither modifies state and neither raises.

        Args:
            event: Raw data channel frame, decoded mapping, or typed event

        Returns:
            Description of what changed
        """
        delta = MessageListDelta()

        if isinstance(event, TranscriptEvent):
            parsed: TranscriptEvent | None = event
        else:
            try:
                parsed = parse_event(event)
            except MalformedEventError as e:
                logger.warning("Dropping malformed event: %s", e)
                delta.dropped = True
                return delta

        if parsed is None:
            delta.ignored = True
            return delta

        self._handlers[type(parsed)](parsed, delta)
        return delta

    # Message primitives

    def _create(self, message_id: str, role: Role, text: str, streaming: bool,
                delta: MessageListDelta) -> Message:
        message = Message(
            id=message_id,
            role=role,
            text=text,
            is_streaming=streaming,
            timestamp=self._clock(),
        )
        self._state.append(message)
        delta.added.append(message_id)
        return message

    @staticmethod
    def _touch(message: Message, delta: MessageListDelta) -> None:
        if message.id not in delta.added and message.id not in delta.updated:
            delta.updated.append(message.id)

    def _append(self, message_id: str, role: Role, fragment: str, delta: MessageListDelta) -> None:
        if not fragment:
            return
        message = self._state.get(message_id)
        if message is None:
            self._create(message_id, role, fragment, True, delta)
            return
        message.text += fragment
        self._touch(message, delta)

    def _replace(self, message_id: str, role: Role, text: str, delta: MessageListDelta,
                 finalize: bool = False) -> None:
        """Replace a message's text, optionally finalizing it.

        Empty text never overwrites accumulated content. When finalizing
        with empty text only the streaming flag changes.
        """
        message = self._state.get(message_id)
        if message is None:
            if text:
                self._create(message_id, role, text, not finalize, delta)
            return

        if text and message.text != text:
            message.text = text
            self._touch(message, delta)
        if finalize and message.is_streaming:
            message.is_streaming = False
            self._touch(message, delta)

    # Assistant turns

    def _on_response_created(self, event: ResponseCreated, delta: MessageListDelta) -> None:
        if self._state.get(event.response_id) is None:
            self._create(event.response_id, Role.ASSISTANT, "", True, delta)

    def _on_response_delta(self, event: ResponseTextDelta, delta: MessageListDelta) -> None:
        self._append(event.response_id, Role.ASSISTANT, event.delta, delta)

    def _on_response_completed(self, event: ResponseCompleted, delta: MessageListDelta) -> None:
        self._replace(event.response_id, Role.ASSISTANT, event.final_text, delta, finalize=True)

    def _on_response_replace(self, event: AudioTranscriptDone | ContentPartDone | OutputItemDone,
                             delta: MessageListDelta) -> None:
        text = event.transcript if isinstance(event, AudioTranscriptDone) else event.text
        # Not a finalize: the streaming flag stays until response.done
        self._replace(event.response_id, Role.ASSISTANT, text, delta)

    def _on_response_error(self, event: ResponseError, delta: MessageListDelta) -> None:
        self._state.error = event.message
        delta.error = event.message

    # Conversation items

    def _on_item_created(self, event: ConversationItemCreated, delta: MessageListDelta) -> None:
        if event.role is Role.USER:
            message = self._state.get(event.item_id)
            if message is None:
                self._create(event.item_id, Role.USER, event.text, not event.text, delta)
            else:
                self._replace(event.item_id, Role.USER, event.text, delta, finalize=bool(event.text))
        elif event.role is Role.ASSISTANT:
            self._patch_assistant_item(event, delta)

    def _patch_assistant_item(self, event: ConversationItemCreated, delta: MessageListDelta) -> None:
        """Position-based fallback for assistant items.

        Assistant items carry an item id, not the response id the streaming
        message is keyed by, so the item is matched to the first assistant
        message that is still streaming or has no text yet.
        """
        if not event.text:
            return

        for message in self._state.messages:
            if message.role is Role.ASSISTANT and (message.is_streaming or not message.text):
                message.text = event.text
                message.is_streaming = False
                self._touch(message, delta)
                return

        self._replace(event.item_id, Role.ASSISTANT, event.text, delta, finalize=True)

    def _on_transcription_delta(self, event: InputAudioTranscriptionDelta, delta: MessageListDelta) -> None:
        self._append(event.item_id, Role.USER, event.delta, delta)

    def _on_transcription_done(self, event: InputAudioTranscriptionDone, delta: MessageListDelta) -> None:
        self._replace(event.item_id, Role.USER, event.transcript, delta, finalize=True)

    def _on_item_completed(self, event: ConversationItemCompleted, delta: MessageListDelta) -> None:
        if event.role is not Role.USER:
            # Role-less items may only complete a user message we already hold
            existing = self._state.get(event.item_id)
            if event.role is not None or existing is None or existing.role is not Role.USER:
                return
        self._replace(event.item_id, Role.USER, event.text, delta, finalize=True)
