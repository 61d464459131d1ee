from __future__ import annotations

import asyncio
import logging

from conftest import FakeHost, FakeScheduler, FakeSource, make_record

from sight_words.learning.display import EMPTY_MESSAGE, HINT_CONTINUE, HINT_START, WordDisplay
from sight_words.learning.provider import SightWordProvider
from sight_words.services.speech import SpeechNarrator, Voice

ALEX = Voice("Alex", "en-US")


def _build(record, *, host=None, scheduler=None):
    scheduler = scheduler or FakeScheduler()
    provider = SightWordProvider(FakeSource(record), scheduler=scheduler, notify=lambda note: None)
    narrator = SpeechNarrator(host, scheduler=scheduler)
    display = WordDisplay(provider, narrator)
    return provider, narrator, display


async def _settle(rounds: int = 5) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


def test_render_states():
    provider, _, display = _build(make_record(words=[]), host=FakeHost([ALEX]))
    provider.is_loading = True
    assert display.render().status == "loading"
    provider.is_loading = False
    asyncio.run(provider.load())
    empty = display.render()
    assert empty.status == "empty"
    assert empty.message == EMPTY_MESSAGE


def test_render_word_position_and_hint():
    provider, _, display = _build(make_record(), host=FakeHost([ALEX]))
    asyncio.run(provider.load())
    state = display.render()
    assert state.word == "cat"
    assert state.position == "Word 1 of 3"
    assert state.hint == HINT_START


def test_hint_without_speech_support_says_continue():
    provider, _, display = _build(make_record(), host=None)
    asyncio.run(provider.load())
    assert display.render().hint == HINT_CONTINUE


def test_click_advances_and_speaks_the_new_word():
    async def scenario():
        host = FakeHost([ALEX])
        provider, _, display = _build(make_record(), host=host)
        await provider.load()
        display.click()
        await _settle()
        return host, provider, display

    host, provider, display = asyncio.run(scenario())
    assert provider.current_word == "dog"
    assert host.spoken_texts == ["dog"]
    assert display.has_user_interacted is True
    assert display.render().hint == HINT_CONTINUE


def test_only_space_key_advances():
    async def scenario():
        host = FakeHost([ALEX])
        provider, _, display = _build(make_record(), host=host)
        await provider.load()
        assert display.key_down("Enter") is False
        assert provider.current_index == 0
        assert display.key_down("Space") is True
        await _settle()
        return host, provider

    host, provider = asyncio.run(scenario())
    assert provider.current_index == 1
    assert host.spoken_texts == ["dog"]


def test_no_speech_before_first_interaction():
    async def scenario():
        host = FakeHost([ALEX])
        scheduler = FakeScheduler()
        provider, _, _ = _build(make_record(auto_advance=True), host=host, scheduler=scheduler)
        await provider.load()
        scheduler.advance(3.0)
        await _settle()
        return host, provider

    host, provider = asyncio.run(scenario())
    assert provider.current_index == 1
    assert host.spoken == []


def test_empty_list_click_makes_no_speech_call():
    async def scenario():
        host = FakeHost([ALEX])
        provider, _, display = _build(make_record(words=[]), host=host)
        await provider.load()
        display.click()
        await _settle()
        return host, provider

    host, provider = asyncio.run(scenario())
    assert provider.current_index == 0
    assert host.calls == []


def test_speech_settings_follow_the_provider():
    provider, narrator, _ = _build(
        make_record(speech_rate="1.5", speech_pitch="0.6", speech_voice="Alex", speech_enabled=False),
        host=FakeHost([ALEX]),
    )
    asyncio.run(provider.load())
    assert narrator.settings.rate == 1.5
    assert narrator.settings.pitch == 0.6
    assert narrator.settings.voice == "Alex"
    assert narrator.settings.enabled is False


def test_speech_failure_is_logged_not_raised(caplog):
    async def scenario():
        host = FakeHost([ALEX])
        host.fail_with = "synthesis-failed"
        provider, _, display = _build(make_record(), host=host)
        await provider.load()
        display.click()
        await _settle()
        return provider

    with caplog.at_level(logging.ERROR, logger="sight_words"):
        provider = asyncio.run(scenario())
    assert provider.current_word == "dog"
    assert any("failed to speak word" in rec.getMessage() for rec in caplog.records)
