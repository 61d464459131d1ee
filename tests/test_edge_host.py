from __future__ import annotations

import asyncio

import pytest

from sight_words.config import AppConfig
from sight_words.services import edge_host
from sight_words.services.edge_host import EdgeTTSHost, build_narrator
from sight_words.services.speech import SpeechError, Utterance, Voice


def _utterance(text: str = "cat") -> Utterance:
    return Utterance(text=text, rate=0.8, pitch=1.0, volume=0.8, lang="en-US", voice=Voice("en-US-AriaNeural", "en-US"))


class WritingCommunicate:
    def __init__(self, text, voice, rate, volume, pitch):
        self.text = text

    async def save(self, path):
        with open(path, "wb") as fh:
            fh.write(b"ID3")


class BrokenCommunicate:
    def __init__(self, text, voice, rate, volume, pitch):
        pass

    async def save(self, path):
        with open(path, "wb") as fh:
            fh.write(b"partial")
        raise ConnectionError("service unavailable")


class FakeProcess:
    def __init__(self, code: int | None = 0) -> None:
        self.code = code
        self.returncode = None
        self.terminated = False
        self._done = asyncio.Event()
        if code is not None:
            self._finish(code)

    def _finish(self, code: int) -> None:
        self.returncode = code
        self._done.set()

    async def wait(self) -> int:
        await self._done.wait()
        return self.returncode

    def terminate(self) -> None:
        self.terminated = True
        self._finish(-15)


class FakeVoicesManager:
    voices = [
        {"ShortName": "en-US-AriaNeural", "Locale": "en-US"},
        {"ShortName": "fr-FR-DeniseNeural", "Locale": "fr-FR"},
        {"Locale": "xx-XX"},
    ]

    @classmethod
    async def create(cls):
        return cls()


def _use_player(monkeypatch, process: FakeProcess) -> list[tuple]:
    launched: list[tuple] = []

    async def fake_exec(*args, **kwargs):
        launched.append(args)
        return process

    monkeypatch.setattr(edge_host.asyncio, "create_subprocess_exec", fake_exec)
    return launched


def test_failed_synthesis_leaves_no_audio_file(monkeypatch, tmp_path):
    monkeypatch.setattr(edge_host.edge_tts, "Communicate", BrokenCommunicate)
    host = EdgeTTSHost(audio_dir=tmp_path)

    with pytest.raises(SpeechError) as caught:
        asyncio.run(host.speak(_utterance()))

    assert caught.value.code == "synthesis-failed"
    assert list(tmp_path.glob("*.mp3")) == []
    assert host.speaking is False


def test_player_exit_failure_is_an_audio_error(monkeypatch, tmp_path):
    monkeypatch.setattr(edge_host.edge_tts, "Communicate", WritingCommunicate)
    launched = _use_player(monkeypatch, FakeProcess(1))
    host = EdgeTTSHost(audio_dir=tmp_path, player=["mpg123", "-q"])

    with pytest.raises(SpeechError) as caught:
        asyncio.run(host.speak(_utterance()))

    assert caught.value.code == "audio-hardware"
    assert launched[0][:2] == ("mpg123", "-q")
    assert launched[0][2].endswith(".mp3")


def test_cancel_terminates_running_player(monkeypatch, tmp_path):
    monkeypatch.setattr(edge_host.edge_tts, "Communicate", WritingCommunicate)
    process = FakeProcess(None)
    _use_player(monkeypatch, process)
    host = EdgeTTSHost(audio_dir=tmp_path, player=["afplay"])

    async def scenario():
        task = asyncio.ensure_future(host.speak(_utterance()))
        for _ in range(10):
            await asyncio.sleep(0)
        assert host.speaking is True
        host.cancel()
        with pytest.raises(SpeechError) as caught:
            await task
        return caught.value

    error = asyncio.run(scenario())
    assert process.terminated is True
    assert error.code == "canceled"
    assert host.speaking is False


def test_voice_catalog_fills_voices_and_notifies(monkeypatch, tmp_path):
    monkeypatch.setattr(edge_host.edge_tts, "VoicesManager", FakeVoicesManager)
    host = EdgeTTSHost(audio_dir=tmp_path)
    heard = []
    host.add_voices_listener(lambda: heard.append(len(host.get_voices())))

    asyncio.run(host._fetch_voices())

    assert host.get_voices() == [Voice("en-US-AriaNeural", "en-US"), Voice("fr-FR-DeniseNeural", "fr-FR")]
    assert heard == [2]


def test_narrator_is_unsupported_without_a_player(monkeypatch):
    monkeypatch.setattr(edge_host.shutil, "which", lambda name: None)
    narrator = build_narrator(AppConfig())
    assert narrator.supported is False


def test_narrator_uses_first_player_found(monkeypatch):
    monkeypatch.setattr(edge_host.edge_tts, "VoicesManager", FakeVoicesManager)
    monkeypatch.setattr(edge_host.shutil, "which", lambda name: "/usr/bin/mpg123" if name == "mpg123" else None)

    async def scenario():
        narrator = build_narrator(AppConfig())
        await asyncio.sleep(0)
        return narrator

    narrator = asyncio.run(scenario())
    assert narrator.supported is True
    assert narrator.host.player == ["/usr/bin/mpg123"]


def test_configured_player_command_is_split(monkeypatch):
    monkeypatch.setattr(edge_host.edge_tts, "VoicesManager", FakeVoicesManager)

    async def scenario():
        return build_narrator(AppConfig(audio_player="mpv --no-video"))

    narrator = asyncio.run(scenario())
    assert narrator.host.player == ["mpv", "--no-video"]
