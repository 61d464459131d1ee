from __future__ import annotations

import json
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path

from sight_words.api.schemas import SightWordsCreate, SightWordsRecord, SightWordsUpdate
from sight_words.config import DB_PATH
from sight_words.storage.store import SettingsStore, build_record


class SqliteStore(SettingsStore):
    def __init__(self, db_path: Path = DB_PATH) -> None:
        self.db_path = db_path
        self._lock = threading.Lock()

    @contextmanager
    def connect(self):
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def initialize(self) -> None:
        schema_path = Path(__file__).with_name("schema.sql")
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self.connect() as conn:
            conn.executescript(schema_path.read_text(encoding="utf-8"))

    def get(self, user_id: str) -> SightWordsRecord | None:
        with self._lock, self.connect() as conn:
            row = self._fetch(conn, user_id)
        return _decode_record(row) if row else None

    def create(self, data: SightWordsCreate) -> SightWordsRecord:
        # id is assigned by sqlite; build_record only applies field defaults
        draft = build_record(0, data)
        with self._lock, self.connect() as conn:
            conn.execute(
                """
                INSERT INTO sight_words
                (user_id, words, random_order, auto_advance, speech_enabled,
                 speech_rate, speech_pitch, speech_voice)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    draft.user_id,
                    _json_dumps(draft.words),
                    int(draft.random_order),
                    int(draft.auto_advance),
                    int(draft.speech_enabled),
                    draft.speech_rate,
                    draft.speech_pitch,
                    draft.speech_voice,
                ),
            )
            row = self._fetch(conn, draft.user_id)
        return _decode_record(row)

    def update(self, user_id: str, data: SightWordsUpdate) -> SightWordsRecord | None:
        with self._lock, self.connect() as conn:
            cur = conn.execute(
                """
                UPDATE sight_words
                SET words = ?,
                    random_order = ?,
                    auto_advance = ?,
                    speech_enabled = ?,
                    speech_rate = ?,
                    speech_pitch = ?,
                    speech_voice = ?,
                    updated_at = CURRENT_TIMESTAMP
                WHERE user_id = ?
                """,
                (
                    _json_dumps(list(data.words)),
                    int(data.random_order),
                    int(data.auto_advance),
                    int(data.speech_enabled),
                    data.speech_rate,
                    data.speech_pitch,
                    data.speech_voice,
                    user_id,
                ),
            )
            if cur.rowcount == 0:
                return None
            row = self._fetch(conn, user_id)
        return _decode_record(row)

    @staticmethod
    def _fetch(conn: sqlite3.Connection, user_id: str) -> sqlite3.Row | None:
        return conn.execute(
            "SELECT * FROM sight_words WHERE user_id = ?",
            (user_id,),
        ).fetchone()


def _json_dumps(value: object) -> str:
    return json.dumps(value, ensure_ascii=False)


def _json_loads(value: str | None) -> list:
    if not value:
        return []
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        return []
    return [str(item) for item in parsed] if isinstance(parsed, list) else []


def _decode_record(row: sqlite3.Row) -> SightWordsRecord:
    return SightWordsRecord(
        id=row["id"],
        user_id=row["user_id"],
        words=_json_loads(row["words"]),
        random_order=bool(row["random_order"]),
        auto_advance=bool(row["auto_advance"]),
        speech_enabled=bool(row["speech_enabled"]),
        speech_rate=row["speech_rate"],
        speech_pitch=row["speech_pitch"],
        speech_voice=row["speech_voice"],
    )
