from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

import uvicorn

from sight_words.app import create_app
from sight_words.client.sources import ApiSettingsSource, LocalSettingsSource, SettingsSource
from sight_words.config import LOCAL_SETTINGS_PATH, ensure_dirs, load_config
from sight_words.learning.display import DisplayState, WordDisplay
from sight_words.learning.editor import SettingsEditor
from sight_words.learning.provider import Notification, SightWordProvider
from sight_words.logging_config import setup_logging
from sight_words.services.edge_host import build_narrator

logger = logging.getLogger(__name__)

HELP_TEXT = "[enter] next word   [s] settings   [q] quit"


def build_parser() -> argparse.ArgumentParser:
    config = load_config()
    parser = argparse.ArgumentParser(prog="sight-words", description="Sight word flashcard trainer")
    parser.add_argument("--log-level", default=config.log_level)
    sub = parser.add_subparsers(dest="cmd", required=True)

    serve = sub.add_parser("serve", help="run the settings API")
    serve.add_argument("--host", default=config.host)
    serve.add_argument("--port", type=int, default=config.port)

    practice = sub.add_parser("practice", help="practice words in the terminal")
    target = practice.add_mutually_exclusive_group()
    target.add_argument("--base-url", default=None, help=f"settings API url (e.g. {config.api_url})")
    target.add_argument("--local", type=Path, default=None, help="keep settings in a local JSON file")
    return parser


def build_source(args: argparse.Namespace) -> SettingsSource:
    if args.base_url:
        return ApiSettingsSource(args.base_url)
    return LocalSettingsSource(args.local or LOCAL_SETTINGS_PATH)


def format_state(state: DisplayState) -> str:
    if state.status == "loading":
        return "Loading..."
    if state.status == "empty":
        return state.message or ""
    return f"\n    {state.word}\n\n{state.hint}\n{state.position}"


def print_notification(note: Notification) -> None:
    print(f"* {note.title}: {note.description}")


async def _prompt(text: str) -> str:
    return await asyncio.to_thread(input, text)


async def edit_settings(editor: SettingsEditor) -> None:
    editor.open()
    print("Current words:")
    print(editor.words_text or "(none)")
    print("Enter one word per line, finish with an empty line. [r] resets to the default list, [.] keeps the current list.")
    lines: list[str] = []
    while True:
        line = await _prompt("word> ")
        if not lines and line.strip() == "r":
            editor.reset_to_default()
            break
        if not lines and line.strip() == ".":
            break
        if not line.strip():
            if lines:
                editor.words_text = "\n".join(lines)
            break
        lines.append(line)

    editor.random_order = await _ask_flag("Random order", editor.random_order)
    editor.auto_advance = await _ask_flag("Auto-advance (3 seconds)", editor.auto_advance)
    if editor.speech_supported:
        editor.speech_enabled = await _ask_flag("Read words aloud", editor.speech_enabled)
        if editor.speech_enabled:
            editor.set_speech_rate(await _ask_number("Speech rate", editor.speech_rate))
            editor.set_speech_pitch(await _ask_number("Speech pitch", editor.speech_pitch))
            options = editor.voice_options()
            if len(options) > 1:
                answer = await _prompt(f"Voice name [{editor.speech_voice or 'default'}]: ")
                if answer.strip():
                    editor.set_speech_voice(None if answer.strip() == "default" else answer.strip())

    if not await editor.save():
        editor.close()


async def _ask_flag(label: str, current: bool) -> bool:
    answer = (await _prompt(f"{label} [{'Y/n' if current else 'y/N'}]: ")).strip().lower()
    if not answer:
        return current
    return answer in {"y", "yes"}


async def _ask_number(label: str, current: float) -> float:
    answer = (await _prompt(f"{label} [{current:.1f}]: ")).strip()
    if not answer:
        return current
    try:
        return float(answer)
    except ValueError:
        print(f"not a number: {answer}")
        return current


async def practice(args: argparse.Namespace) -> int:
    config = load_config()
    ensure_dirs()
    source = build_source(args)
    provider = SightWordProvider(source, notify=print_notification)
    narrator = build_narrator(config)
    narrator.start()
    display = WordDisplay(provider, narrator)
    editor = SettingsEditor(provider, narrator)

    def on_change(event: str) -> None:
        if event == "index" and not provider.is_settings_open:
            print(format_state(display.render()))

    provider.subscribe(on_change)
    try:
        await provider.load()
        print(HELP_TEXT)
        print(format_state(display.render()))
        while True:
            command = (await _prompt("> ")).strip().lower()
            if command == "q":
                break
            if command == "s":
                await edit_settings(editor)
                print(format_state(display.render()))
                continue
            display.key_down("Space")
    finally:
        display.close()
        narrator.close()
        provider.close()
        await source.aclose()
    return 0


def serve(args: argparse.Namespace) -> int:
    logger.info("serving on %s:%s", args.host, args.port)
    uvicorn.run(create_app(), host=args.host, port=args.port, log_level=args.log_level.lower())
    return 0


def run(args: argparse.Namespace) -> int:
    if args.cmd == "serve":
        return serve(args)
    if args.cmd == "practice":
        return asyncio.run(practice(args))
    raise ValueError(f"unknown command: {args.cmd}")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    return run(args)


if __name__ == "__main__":
    raise SystemExit(main())
