from __future__ import annotations

import asyncio
import dataclasses
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from sight_words.learning.navigation import LoopScheduler, Scheduler, TimerHandle

logger = logging.getLogger(__name__)

VOICE_WAIT_INTERVAL = 0.05
VOICE_WAIT_ATTEMPTS = 20
VOICE_POLL_DELAYS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.0)
VOICE_CHECK_DELAY = 3.0


class SpeechError(RuntimeError):
    def __init__(self, code: str, message: str | None = None) -> None:
        super().__init__(message or f"Speech synthesis failed: {code}")
        self.code = code


@dataclass(frozen=True)
class Voice:
    name: str
    lang: str
    default: bool = False


@dataclass
class SpeechSettings:
    enabled: bool = True
    rate: float = 0.8
    pitch: float = 1.0
    volume: float = 0.8
    voice: str | None = None


@dataclass
class Utterance:
    text: str
    rate: float
    pitch: float
    volume: float
    lang: str
    voice: Voice | None = None
    interrupted: bool = field(default=False, compare=False)


class SpeechHost(ABC):
    """What the narrator needs from a text-to-speech engine.

    ``speak`` returns when the utterance has finished and raises
    ``SpeechError`` with the engine's error code when it fails. Cancelling
    the awaiting task must stop the utterance.
    """

    fires_voices_changed = True
    default_lang = "en-US"

    @abstractmethod
    def get_voices(self) -> list[Voice]:
        ...

    @abstractmethod
    def add_voices_listener(self, callback: Callable[[], None]) -> None:
        ...

    @property
    @abstractmethod
    def speaking(self) -> bool:
        ...

    @property
    def pending(self) -> bool:
        return False

    @abstractmethod
    async def speak(self, utterance: Utterance) -> None:
        ...

    @abstractmethod
    def cancel(self) -> None:
        ...


class SpeechNarrator:
    """Reads words aloud one utterance at a time.

    A new ``speak`` call preempts whatever is playing instead of queueing
    behind it; the preempted call fails with ``SpeechError("interrupted")``.
    Without a host every operation is a no-op.
    """

    def __init__(
        self,
        host: SpeechHost | None,
        settings: SpeechSettings | None = None,
        *,
        scheduler: Scheduler | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.host = host
        self.settings = settings or SpeechSettings()
        self.scheduler = scheduler or LoopScheduler()
        self.voices: list[Voice] = []
        self._sleep = sleep
        self._current: tuple[Utterance, asyncio.Task] | None = None
        self._generation = 0
        self._polls: list[TimerHandle] = []

    @property
    def supported(self) -> bool:
        return self.host is not None

    @property
    def ready(self) -> bool:
        return bool(self.voices)

    @property
    def is_speaking(self) -> bool:
        return self._current is not None and not self._current[1].done()

    def start(self) -> None:
        if self.host is None:
            return
        self.load_voices()
        if self.host.fires_voices_changed:
            self.host.add_voices_listener(self.load_voices)
            return
        logger.debug("host does not announce voice changes; polling on a fixed schedule")
        for delay in VOICE_POLL_DELAYS:
            self._polls.append(self.scheduler.call_later(delay, self.load_voices))
        self._polls.append(self.scheduler.call_later(VOICE_CHECK_DELAY, self._check_voices))

    def load_voices(self) -> None:
        if self.host is None:
            return
        self.voices = list(self.host.get_voices())
        logger.debug("loaded %d voices", len(self.voices))

    def close(self) -> None:
        for handle in self._polls:
            handle.cancel()
        self._polls.clear()
        self.stop()

    def update_settings(self, **changes) -> SpeechSettings:
        self.settings = dataclasses.replace(self.settings, **changes)
        return self.settings

    def select_voice(self, voices: list[Voice]) -> Voice | None:
        if self.settings.voice:
            for voice in voices:
                if voice.name == self.settings.voice:
                    return voice
        for voice in voices:
            if voice.lang.lower().startswith("en"):
                return voice
        return voices[0] if voices else None

    async def speak(self, text: str) -> None:
        if self.host is None or not self.settings.enabled or not text.strip():
            return

        self._preempt()
        self._generation += 1
        generation = self._generation

        voices = self.host.get_voices()
        if not voices:
            logger.debug("waiting for voices to load")
            for _ in range(VOICE_WAIT_ATTEMPTS):
                await self._sleep(VOICE_WAIT_INTERVAL)
                voices = self.host.get_voices()
                if voices:
                    break
            self.voices = list(voices)
            if generation != self._generation:
                raise SpeechError("interrupted")

        voice = self.select_voice(voices)
        utterance = Utterance(
            text=text,
            rate=self.settings.rate,
            pitch=self.settings.pitch,
            volume=self.settings.volume,
            lang=voice.lang if voice else self.host.default_lang,
            voice=voice,
        )
        logger.debug("speaking %r with voice %s (%s)", text, voice.name if voice else "default", utterance.lang)

        task = asyncio.ensure_future(self.host.speak(utterance))
        self._current = (utterance, task)
        try:
            await task
        except asyncio.CancelledError:
            if utterance.interrupted:
                raise SpeechError("interrupted") from None
            raise
        except SpeechError as exc:
            logger.error("speech synthesis error for %r: %s", text, exc.code)
            raise
        except Exception as exc:
            logger.error("speech synthesis error for %r: %s", text, exc)
            raise SpeechError("synthesis-failed", str(exc)) from exc
        finally:
            if self._current is not None and self._current[1] is task:
                self._current = None

    def stop(self) -> None:
        if self.host is None:
            return
        self._generation += 1
        self._preempt()

    def _preempt(self) -> None:
        if self._current is not None:
            utterance, task = self._current
            if not task.done():
                utterance.interrupted = True
                task.cancel()
            self._current = None
        if self.host.speaking or self.host.pending:
            self.host.cancel()

    def _check_voices(self) -> None:
        if self.host is not None and not self.host.get_voices():
            logger.warning("no speech voices available; words will not be read aloud")
