from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from sight_words.learning.provider import SightWordProvider
from sight_words.services.speech import SpeechError, SpeechNarrator

logger = logging.getLogger(__name__)

EMPTY_MESSAGE = "No words added yet. Click settings to add some words!"
HINT_START = "Click anywhere or press spacebar to start (with speech)"
HINT_CONTINUE = "Click anywhere or press spacebar to continue"
QUIET_SPEECH_CODES = {"interrupted", "canceled"}


@dataclass(frozen=True)
class DisplayState:
    status: str
    word: str | None = None
    hint: str | None = None
    position: str | None = None
    message: str | None = None


class WordDisplay:
    def __init__(self, provider: SightWordProvider, narrator: SpeechNarrator) -> None:
        self.provider = provider
        self.narrator = narrator
        self.has_user_interacted = False
        self._tasks: set[asyncio.Task] = set()
        self._sync_speech_settings()
        self._unsubscribe = provider.subscribe(self._on_change)

    def render(self) -> DisplayState:
        provider = self.provider
        if provider.is_loading:
            return DisplayState(status="loading")
        words = provider.words
        if not words:
            return DisplayState(status="empty", message=EMPTY_MESSAGE)

        wants_speech = provider.speech_enabled and self.narrator.supported
        hint = HINT_START if not self.has_user_interacted and wants_speech else HINT_CONTINUE
        return DisplayState(
            status="word",
            word=provider.current_word,
            hint=hint,
            position=f"Word {provider.current_index + 1} of {len(words)}",
        )

    def click(self) -> None:
        self._interact()

    def key_down(self, code: str) -> bool:
        if code != "Space":
            return False
        self._interact()
        return True

    def close(self) -> None:
        self._unsubscribe()
        for task in list(self._tasks):
            task.cancel()
        self.narrator.stop()

    def _interact(self) -> None:
        self.has_user_interacted = True
        self.provider.show_next_word()

    def _on_change(self, event: str) -> None:
        if event == "settings":
            self._sync_speech_settings()
        if event in {"index", "settings"}:
            self._speak_current()

    def _sync_speech_settings(self) -> None:
        provider = self.provider
        self.narrator.update_settings(
            enabled=provider.speech_enabled,
            rate=to_float(provider.speech_rate, 0.8),
            pitch=to_float(provider.speech_pitch, 1.0),
            voice=provider.speech_voice,
        )

    def _speak_current(self) -> None:
        provider = self.provider
        if not (self.has_user_interacted and provider.speech_enabled and self.narrator.supported):
            return
        word = provider.current_word
        if not word:
            return
        task = asyncio.ensure_future(self._narrate(word))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _narrate(self, word: str) -> None:
        try:
            await self.narrator.speak(word)
        except SpeechError as exc:
            if exc.code in QUIET_SPEECH_CODES:
                logger.debug("speech for %r was interrupted", word)
            else:
                logger.error("failed to speak word %r: %s", word, exc)


def to_float(value: str, fallback: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return fallback
