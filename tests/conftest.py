from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from sight_words.api.schemas import SightWordsRecord, SightWordsUpdate
from sight_words.app import create_app
from sight_words.client.sources import SettingsSource, SettingsSourceError
from sight_words.services.speech import SpeechError, SpeechHost, Utterance, Voice
from sight_words.storage.store import MemoryStore


class FakeTimer:
    def __init__(self, scheduler: "FakeScheduler", due: float, callback) -> None:
        self.scheduler = scheduler
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[FakeTimer] = []

    def call_later(self, delay, callback) -> FakeTimer:
        timer = FakeTimer(self, self.now + delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self.pending if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self.now = timer.due
            timer.cancelled = True
            timer.callback()
        self.now = target


class FakeSource(SettingsSource):
    def __init__(self, record: SightWordsRecord | None = None) -> None:
        self.record = record
        self.saved: list[SightWordsUpdate] = []
        self.fail_save = False
        self.fail_load = False

    async def load(self) -> SightWordsRecord | None:
        if self.fail_load:
            raise SettingsSourceError("settings API returned 500")
        return self.record

    async def save(self, update: SightWordsUpdate) -> SightWordsRecord:
        if self.fail_save:
            raise SettingsSourceError("settings API returned 500")
        self.saved.append(update)
        self.record = SightWordsRecord(id=1, **update.model_dump())
        return self.record


class FakeHost(SpeechHost):
    def __init__(self, voices: list[Voice] | None = None, *, fires_voices_changed: bool = True) -> None:
        self.voices = list(voices or [])
        self.fires_voices_changed = fires_voices_changed
        self.calls: list[tuple] = []
        self.listeners = []
        self.spoken: list[Utterance] = []
        self.fail_with: str | None = None
        self.auto_finish = True
        self._active = 0

    def get_voices(self) -> list[Voice]:
        self.calls.append(("get_voices",))
        return list(self.voices)

    def add_voices_listener(self, callback) -> None:
        self.listeners.append(callback)

    def announce(self, voices: list[Voice]) -> None:
        self.voices = list(voices)
        for callback in self.listeners:
            callback()

    @property
    def speaking(self) -> bool:
        return self._active > 0

    async def speak(self, utterance: Utterance) -> None:
        self.calls.append(("speak", utterance.text))
        self.spoken.append(utterance)
        self._active += 1
        try:
            if self.fail_with:
                raise SpeechError(self.fail_with)
            if self.auto_finish:
                await asyncio.sleep(0)
            else:
                await asyncio.Event().wait()
        finally:
            self._active -= 1

    def cancel(self) -> None:
        self.calls.append(("cancel",))

    @property
    def spoken_texts(self) -> list[str]:
        return [u.text for u in self.spoken]


def make_record(**overrides) -> SightWordsRecord:
    data = {
        "id": 1,
        "words": ["cat", "dog", "sun"],
        "random_order": False,
        "auto_advance": False,
        "speech_enabled": True,
        "speech_rate": "0.8",
        "speech_pitch": "1.0",
        "speech_voice": None,
    }
    data.update(overrides)
    return SightWordsRecord(**data)


@pytest.fixture()
def store():
    return MemoryStore()


@pytest.fixture()
def client(store):
    with TestClient(create_app(store, seed=False)) as c:
        yield c


@pytest.fixture()
def scheduler():
    return FakeScheduler()
