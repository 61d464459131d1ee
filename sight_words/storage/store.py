from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod

from sight_words.api.schemas import SightWordsCreate, SightWordsRecord, SightWordsUpdate
from sight_words.config import (
    DEFAULT_USER_ID,
    SEED_WORDS,
    SPEECH_PITCH_DEFAULT,
    SPEECH_RATE_DEFAULT,
)

logger = logging.getLogger(__name__)


class SettingsStore(ABC):
    """Holds at most one settings record per user id.

    Implementations hand out copies; mutating a returned record never
    changes what the store holds.
    """

    def initialize(self) -> None:
        pass

    @abstractmethod
    def get(self, user_id: str) -> SightWordsRecord | None:
        ...

    @abstractmethod
    def create(self, data: SightWordsCreate) -> SightWordsRecord:
        ...

    @abstractmethod
    def update(self, user_id: str, data: SightWordsUpdate) -> SightWordsRecord | None:
        ...


class MemoryStore(SettingsStore):
    def __init__(self) -> None:
        self._records: dict[str, SightWordsRecord] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def get(self, user_id: str) -> SightWordsRecord | None:
        with self._lock:
            record = self._records.get(user_id)
            return record.model_copy(deep=True) if record else None

    def create(self, data: SightWordsCreate) -> SightWordsRecord:
        with self._lock:
            record = build_record(self._next_id, data)
            self._next_id += 1
            self._records[record.user_id] = record
            return record.model_copy(deep=True)

    def update(self, user_id: str, data: SightWordsUpdate) -> SightWordsRecord | None:
        with self._lock:
            existing = self._records.get(user_id)
            if existing is None:
                return None
            updated = existing.model_copy(update=replacement_fields(data), deep=True)
            self._records[user_id] = updated
            return updated.model_copy(deep=True)


def build_record(record_id: int, data: SightWordsCreate) -> SightWordsRecord:
    return SightWordsRecord(
        id=record_id,
        user_id=data.user_id,
        words=list(data.words),
        random_order=_default(data.random_order, False),
        auto_advance=_default(data.auto_advance, False),
        speech_enabled=_default(data.speech_enabled, True),
        speech_rate=_default(data.speech_rate, SPEECH_RATE_DEFAULT),
        speech_pitch=_default(data.speech_pitch, SPEECH_PITCH_DEFAULT),
        speech_voice=data.speech_voice,
    )


def replacement_fields(data: SightWordsUpdate) -> dict:
    return {
        "words": list(data.words),
        "random_order": data.random_order,
        "auto_advance": data.auto_advance,
        "speech_enabled": data.speech_enabled,
        "speech_rate": data.speech_rate,
        "speech_pitch": data.speech_pitch,
        "speech_voice": data.speech_voice,
    }


def seed_defaults(store: SettingsStore, user_id: str = DEFAULT_USER_ID) -> SightWordsRecord:
    existing = store.get(user_id)
    if existing is not None:
        return existing
    record = store.create(SightWordsCreate(user_id=user_id, words=list(SEED_WORDS)))
    logger.info("seeded %d default sight words for user %s", len(record.words), user_id)
    return record


def _default(value, fallback):
    return fallback if value is None else value
