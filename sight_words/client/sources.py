from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path

import httpx
from pydantic import ValidationError

from sight_words.api.schemas import SightWordsRecord, SightWordsUpdate
from sight_words.config import DEFAULT_USER_ID, LOCAL_SETTINGS_PATH

logger = logging.getLogger(__name__)

SETTINGS_PATH = "/api/sight-words"
LOCAL_SETTINGS_KEY = "sight-words-settings"


class SettingsSourceError(RuntimeError):
    pass


class SettingsSource(ABC):
    """Loads and saves the one settings record the trainer works with."""

    @abstractmethod
    async def load(self) -> SightWordsRecord | None:
        ...

    @abstractmethod
    async def save(self, update: SightWordsUpdate) -> SightWordsRecord:
        ...

    async def aclose(self) -> None:
        pass


class ApiSettingsSource(SettingsSource):
    def __init__(self, base_url: str, *, client: httpx.AsyncClient | None = None, timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def load(self) -> SightWordsRecord | None:
        try:
            resp = await self._client.get(SETTINGS_PATH)
        except httpx.HTTPError as exc:
            raise SettingsSourceError(f"could not reach settings API: {exc}") from exc
        if resp.status_code == 404:
            return None
        return self._decode(resp)

    async def save(self, update: SightWordsUpdate) -> SightWordsRecord:
        payload = update.model_dump(by_alias=True, exclude_none=True)
        try:
            resp = await self._client.post(SETTINGS_PATH, json=payload)
        except httpx.HTTPError as exc:
            raise SettingsSourceError(f"could not reach settings API: {exc}") from exc
        return self._decode(resp)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @staticmethod
    def _decode(resp: httpx.Response) -> SightWordsRecord:
        if resp.status_code >= 400:
            try:
                message = resp.json().get("message")
            except (ValueError, AttributeError):
                message = None
            raise SettingsSourceError(f"settings API returned {resp.status_code}: {message or resp.text}")
        try:
            return SightWordsRecord.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            raise SettingsSourceError(f"unexpected settings payload: {exc}") from exc


class LocalSettingsSource(SettingsSource):
    """Keeps the record in a JSON key-value file when no server is around."""

    def __init__(self, path: Path = LOCAL_SETTINGS_PATH, *, key: str = LOCAL_SETTINGS_KEY) -> None:
        self.path = path
        self.key = key

    async def load(self) -> SightWordsRecord | None:
        raw = self._read().get(self.key)
        if raw is None:
            return None
        try:
            return SightWordsRecord.model_validate(raw)
        except ValidationError as exc:
            raise SettingsSourceError(f"stored settings are malformed: {exc}") from exc

    async def save(self, update: SightWordsUpdate) -> SightWordsRecord:
        try:
            data = self._read()
        except SettingsSourceError as exc:
            logger.warning("replacing unreadable settings file: %s", exc)
            data = {}
        previous = data.get(self.key)
        if not isinstance(previous, dict):
            previous = {}
        record = SightWordsRecord(
            id=int(previous.get("id") or 1),
            user_id=str(previous.get("userId") or DEFAULT_USER_ID),
            **update.model_dump(),
        )
        data[self.key] = record.model_dump(by_alias=True)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        logger.debug("saved settings to %s", self.path)
        return record

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            parsed = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise SettingsSourceError(f"{self.path} is not valid JSON") from exc
        return parsed if isinstance(parsed, dict) else {}
