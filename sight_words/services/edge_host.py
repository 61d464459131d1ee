from __future__ import annotations

import asyncio
import hashlib
import logging
import shlex
import shutil
from pathlib import Path
from typing import Callable, Sequence

import edge_tts

from sight_words.config import AUDIO_DIR, AppConfig
from sight_words.services.speech import SpeechError, SpeechHost, SpeechNarrator, SpeechSettings, Utterance, Voice

logger = logging.getLogger(__name__)

DEFAULT_VOICE = "en-US-JennyNeural"
PITCH_HZ_PER_UNIT = 50
PLAYER_CANDIDATES = ("afplay", "mpg123", "mpg321", "play", "aplay", "mpv")


class EdgeTTSHost(SpeechHost):
    """Speech host backed by edge-tts, optionally played through a local player.

    The voice catalog arrives asynchronously after ``load()``; listeners
    registered with ``add_voices_listener`` fire once it is in.
    Without a player command an utterance ends once its audio file is written.
    """

    fires_voices_changed = True

    def __init__(self, *, audio_dir: Path = AUDIO_DIR, player: Sequence[str] = ()) -> None:
        self.audio_dir = audio_dir
        self.player = list(player)
        self._voices: list[Voice] = []
        self._listeners: list[Callable[[], None]] = []
        self._loader: asyncio.Task | None = None
        self._process: asyncio.subprocess.Process | None = None
        self._speaking = False
        self._cancelled = False

    def load(self) -> None:
        if self._loader is None or self._loader.done():
            self._loader = asyncio.ensure_future(self._fetch_voices())

    async def _fetch_voices(self) -> None:
        try:
            manager = await edge_tts.VoicesManager.create()
        except Exception as exc:
            logger.warning("could not fetch edge-tts voices: %s", exc)
            return
        self._voices = [
            Voice(name=str(item["ShortName"]), lang=str(item.get("Locale") or ""))
            for item in manager.voices
            if item.get("ShortName")
        ]
        logger.info("edge-tts voice catalog loaded: %d voices", len(self._voices))
        for callback in list(self._listeners):
            callback()

    def get_voices(self) -> list[Voice]:
        return list(self._voices)

    def add_voices_listener(self, callback: Callable[[], None]) -> None:
        self._listeners.append(callback)

    @property
    def speaking(self) -> bool:
        return self._speaking

    async def speak(self, utterance: Utterance) -> None:
        self._speaking = True
        self._cancelled = False
        try:
            out = await self._synthesize(utterance)
            if self.player:
                await self._play(out)
        finally:
            self._speaking = False
            self._process = None

    def cancel(self) -> None:
        process = self._process
        if process is not None and process.returncode is None:
            self._cancelled = True
            process.terminate()

    async def _synthesize(self, utterance: Utterance) -> Path:
        voice = utterance.voice.name if utterance.voice else DEFAULT_VOICE
        self.audio_dir.mkdir(parents=True, exist_ok=True)
        out = self.audio_dir / f"word_{_audio_key(utterance, voice)}.mp3"
        if out.exists():
            return out
        communicator = edge_tts.Communicate(
            text=utterance.text,
            voice=voice,
            rate=percent_offset(utterance.rate),
            volume=percent_offset(utterance.volume),
            pitch=hz_offset(utterance.pitch),
        )
        try:
            await communicator.save(str(out))
        except asyncio.CancelledError:
            out.unlink(missing_ok=True)
            raise
        except Exception as exc:
            out.unlink(missing_ok=True)
            raise SpeechError("synthesis-failed", f"edge-tts failed: {exc}") from exc
        return out

    async def _play(self, path: Path) -> None:
        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.player,
                str(path),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            raise SpeechError("audio-hardware", f"unable to launch audio player: {exc}") from exc
        try:
            code = await self._process.wait()
        except asyncio.CancelledError:
            self.cancel()
            raise
        if code != 0 and self._cancelled:
            raise SpeechError("canceled")
        if code != 0:
            raise SpeechError("audio-hardware", f"audio player exited with {code}")


def percent_offset(scale: float) -> str:
    return f"{round((scale - 1.0) * 100):+d}%"


def hz_offset(pitch: float) -> str:
    return f"{round((pitch - 1.0) * PITCH_HZ_PER_UNIT):+d}Hz"


def find_player() -> str | None:
    for name in PLAYER_CANDIDATES:
        resolved = shutil.which(name)
        if resolved:
            return resolved
    return None


def build_narrator(config: AppConfig, settings: SpeechSettings | None = None) -> SpeechNarrator:
    """Narrator for the configured backend; must be called inside the running loop."""
    if config.speech == "off":
        return SpeechNarrator(None, settings)
    if config.audio_player:
        player = shlex.split(config.audio_player)
    else:
        found = find_player()
        if found is None:
            logger.warning("no audio player found (tried %s); words will not be read aloud", ", ".join(PLAYER_CANDIDATES))
            return SpeechNarrator(None, settings)
        player = [found]
    host = EdgeTTSHost(player=player)
    host.load()
    return SpeechNarrator(host, settings)


def _audio_key(utterance: Utterance, voice: str) -> str:
    raw = f"{utterance.text}|{voice}|{utterance.rate}|{utterance.pitch}|{utterance.volume}"
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()[:16]
