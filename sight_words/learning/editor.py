from __future__ import annotations

from sight_words.api.schemas import SightWordsUpdate
from sight_words.config import DEFAULT_WORDS, SPEECH_MAX, SPEECH_MIN
from sight_words.learning.display import to_float
from sight_words.learning.provider import SightWordProvider
from sight_words.services.speech import SpeechNarrator

SLIDER_STEP = 0.1
DEFAULT_VOICE_LABEL = "Default System Voice"


def parse_words(text: str) -> list[str]:
    return [line.strip() for line in text.split("\n") if line.strip()]


def snap_to_slider(value: float) -> float:
    clamped = max(SPEECH_MIN, min(float(value), SPEECH_MAX))
    return round(round(clamped / SLIDER_STEP) * SLIDER_STEP, 1)


class SettingsEditor:
    """Editable copy of the settings; nothing is persisted until ``save``."""

    def __init__(self, provider: SightWordProvider, narrator: SpeechNarrator | None = None) -> None:
        self.provider = provider
        self.narrator = narrator
        self.words_text = ""
        self.random_order = False
        self.auto_advance = False
        self.speech_enabled = True
        self.speech_rate = 0.8
        self.speech_pitch = 1.0
        self.speech_voice: str | None = None

    @property
    def speech_supported(self) -> bool:
        return self.narrator is not None and self.narrator.supported

    def open(self) -> None:
        self.provider.open_settings()
        self.load()

    def close(self) -> None:
        self.provider.close_settings()

    def load(self) -> None:
        provider = self.provider
        self.words_text = "\n".join(provider.words)
        self.random_order = provider.random_order
        self.auto_advance = provider.auto_advance
        self.speech_enabled = provider.speech_enabled
        self.speech_rate = to_float(provider.speech_rate, 0.8)
        self.speech_pitch = to_float(provider.speech_pitch, 1.0)
        self.speech_voice = provider.speech_voice or None

    def set_speech_rate(self, value: float) -> None:
        self.speech_rate = snap_to_slider(value)

    def set_speech_pitch(self, value: float) -> None:
        self.speech_pitch = snap_to_slider(value)

    def set_speech_voice(self, name: str | None) -> None:
        self.speech_voice = name or None

    def reset_to_default(self) -> None:
        self.words_text = "\n".join(DEFAULT_WORDS)

    def voice_options(self) -> list[tuple[str, str]]:
        if not self.speech_supported:
            return []
        options = [("", DEFAULT_VOICE_LABEL)]
        options.extend((voice.name, f"{voice.name} ({voice.lang})") for voice in self.narrator.voices)
        return options

    def build_update(self) -> SightWordsUpdate:
        return SightWordsUpdate(
            words=parse_words(self.words_text),
            random_order=self.random_order,
            auto_advance=self.auto_advance,
            speech_enabled=self.speech_enabled,
            speech_rate=str(snap_to_slider(self.speech_rate)),
            speech_pitch=str(snap_to_slider(self.speech_pitch)),
            speech_voice=self.speech_voice,
        )

    async def save(self) -> bool:
        return await self.provider.save_settings(self.build_update())
