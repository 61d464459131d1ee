from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Callable

from sight_words.api.schemas import SightWordsRecord, SightWordsUpdate
from sight_words.client.sources import SettingsSource
from sight_words.config import AUTO_ADVANCE_SECONDS, SPEECH_PITCH_DEFAULT, SPEECH_RATE_DEFAULT
from sight_words.learning.navigation import LoopScheduler, Scheduler, TimerHandle, next_index

logger = logging.getLogger(__name__)

Listener = Callable[[str], None]


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    variant: str = "default"


def log_notification(note: Notification) -> None:
    if note.variant == "destructive":
        logger.warning("%s: %s", note.title, note.description)
    else:
        logger.info("%s: %s", note.title, note.description)


class SightWordProvider:
    """Current word position plus the loaded settings.

    Listeners are told what changed: ``"index"``, ``"settings"``,
    ``"loading"``, ``"saving"`` or ``"editor"``.
    """

    def __init__(
        self,
        source: SettingsSource,
        *,
        scheduler: Scheduler | None = None,
        rng: random.Random | None = None,
        notify: Callable[[Notification], None] = log_notification,
        auto_advance_delay: float = AUTO_ADVANCE_SECONDS,
    ) -> None:
        self.source = source
        self.scheduler = scheduler or LoopScheduler()
        self.rng = rng or random.Random()
        self.notify = notify
        self.auto_advance_delay = auto_advance_delay

        self.settings: SightWordsRecord | None = None
        self.current_index = 0
        self.is_loading = False
        self.is_saving = False
        self.is_settings_open = False

        self._timer: TimerHandle | None = None
        self._listeners: list[Listener] = []

    @property
    def words(self) -> list[str]:
        return list(self.settings.words) if self.settings else []

    @property
    def random_order(self) -> bool:
        return self.settings.random_order if self.settings else False

    @property
    def auto_advance(self) -> bool:
        return self.settings.auto_advance if self.settings else False

    @property
    def speech_enabled(self) -> bool:
        return self.settings.speech_enabled if self.settings else True

    @property
    def speech_rate(self) -> str:
        return self.settings.speech_rate if self.settings else SPEECH_RATE_DEFAULT

    @property
    def speech_pitch(self) -> str:
        return self.settings.speech_pitch if self.settings else SPEECH_PITCH_DEFAULT

    @property
    def speech_voice(self) -> str | None:
        return self.settings.speech_voice if self.settings else None

    @property
    def current_word(self) -> str | None:
        words = self.words
        if 0 <= self.current_index < len(words):
            return words[self.current_index]
        return None

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def load(self) -> None:
        self._set_flag("is_loading", True, "loading")
        try:
            settings = await self.source.load()
        except Exception as exc:
            logger.exception("failed to load sight word settings")
            self.notify(Notification("Failed to load settings", str(exc), "destructive"))
            return
        finally:
            self._set_flag("is_loading", False, "loading")
        self._apply_settings(settings)

    def show_next_word(self) -> None:
        words = self.words
        if not words:
            return
        self._set_index(next_index(self.current_index, len(words), random_order=self.random_order, rng=self.rng))

    def open_settings(self) -> None:
        self._set_flag("is_settings_open", True, "editor")

    def close_settings(self) -> None:
        self._set_flag("is_settings_open", False, "editor")

    async def save_settings(self, update: SightWordsUpdate) -> bool:
        self._set_index(0)
        self._set_flag("is_saving", True, "saving")
        try:
            await self.source.save(update)
        except Exception:
            logger.exception("failed to save sight word settings")
            self.notify(Notification("Failed to save settings", "Please try again later.", "destructive"))
            return False
        finally:
            self._set_flag("is_saving", False, "saving")

        self.notify(Notification("Settings saved", "Your sight words have been updated successfully."))
        self.close_settings()
        await self.load()
        return True

    def close(self) -> None:
        self._cancel_timer()
        self._listeners.clear()

    def _apply_settings(self, settings: SightWordsRecord | None) -> None:
        self.settings = settings
        if self.current_index >= len(self.words):
            self.current_index = 0
        self._reschedule()
        self._emit("settings")

    def _set_index(self, index: int) -> None:
        self.current_index = index
        self._reschedule()
        self._emit("index")

    def _set_flag(self, name: str, value: bool, event: str) -> None:
        if getattr(self, name) == value:
            return
        setattr(self, name, value)
        self._emit(event)

    def _reschedule(self) -> None:
        self._cancel_timer()
        if self.auto_advance and self.words:
            self._timer = self.scheduler.call_later(self.auto_advance_delay, self._on_auto_advance)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_auto_advance(self) -> None:
        self._timer = None
        self.show_next_word()

    def _emit(self, event: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("sight word listener failed on %s", event)
