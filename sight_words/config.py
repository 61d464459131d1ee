from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[1]
ARTIFACTS_DIR = PROJECT_ROOT / "artifacts"
AUDIO_DIR = ARTIFACTS_DIR / "audio"
LOCAL_SETTINGS_PATH = ARTIFACTS_DIR / "sight_words_settings.json"
DB_PATH = PROJECT_ROOT / "sight_words.db"

DEFAULT_USER_ID = "default"
AUTO_ADVANCE_SECONDS = 3.0

SPEECH_RATE_DEFAULT = "0.8"
SPEECH_PITCH_DEFAULT = "1.0"
SPEECH_MIN = 0.5
SPEECH_MAX = 2.0

# Words the server starts with when seeding is on.
SEED_WORDS = [
    "I", "the", "am", "like", "to", "a", "have", "he", "is", "we",
    "my", "make", "for", "me", "with", "are", "that", "of", "they", "you",
    "do", "one", "two", "three", "four", "five", "here", "go", "from", "yellow",
    "what", "when", "why", "who", "come", "play", "any", "down", "her", "how",
    "away", "give", "little", "funny", "were", "some", "find", "again", "over", "all",
    "now", "pretty", "brown", "black", "white", "good", "open", "could", "please", "want",
    "every", "be", "saw", "our", "eat", "soon", "walk", "into", "there",
]

# Words the settings editor restores on "reset to default".
DEFAULT_WORDS = [
    "the", "and", "to", "a", "is", "you", "that", "it", "he", "was",
    "for", "on", "are", "as", "with", "his", "they", "at", "be", "this",
    "have", "from", "one", "had", "by", "word",
]

STORAGE_BACKENDS = {"memory", "sqlite"}
SPEECH_BACKENDS = {"edge", "off"}


@dataclass(frozen=True)
class AppConfig:
    storage: str = "memory"
    db_path: Path = DB_PATH
    seed_defaults: bool = True
    speech: str = "edge"
    audio_player: str | None = None
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 5000
    api_url: str = "http://127.0.0.1:5000"


def load_config() -> AppConfig:
    storage = os.getenv("SIGHT_WORDS_STORAGE", "memory").strip().lower()
    if storage not in STORAGE_BACKENDS:
        raise ValueError(f"unsupported SIGHT_WORDS_STORAGE: {storage}")
    speech = os.getenv("SIGHT_WORDS_SPEECH", "edge").strip().lower()
    if speech not in SPEECH_BACKENDS:
        raise ValueError(f"unsupported SIGHT_WORDS_SPEECH: {speech}")

    db_path = os.getenv("SIGHT_WORDS_DB_PATH")
    return AppConfig(
        storage=storage,
        db_path=Path(db_path) if db_path else DB_PATH,
        seed_defaults=_env_flag("SIGHT_WORDS_SEED_DEFAULTS", True),
        speech=speech,
        audio_player=os.getenv("SIGHT_WORDS_AUDIO_PLAYER") or None,
        log_level=os.getenv("SIGHT_WORDS_LOG_LEVEL", "INFO").upper(),
        host=os.getenv("SIGHT_WORDS_HOST", "0.0.0.0"),
        port=int(os.getenv("SIGHT_WORDS_PORT", "5000")),
        api_url=os.getenv("SIGHT_WORDS_API_URL", "http://127.0.0.1:5000"),
    )


def ensure_dirs() -> None:
    for path in [ARTIFACTS_DIR, AUDIO_DIR]:
        path.mkdir(parents=True, exist_ok=True)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}
