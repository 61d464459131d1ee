from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from sight_words.config import (
    DEFAULT_USER_ID,
    SPEECH_MAX,
    SPEECH_MIN,
    SPEECH_PITCH_DEFAULT,
    SPEECH_RATE_DEFAULT,
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SightWordsUpdate(_CamelModel):
    """Full replacement payload accepted by ``POST /api/sight-words``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, strict=True)

    words: list[str]
    random_order: bool
    auto_advance: bool
    speech_enabled: bool
    speech_rate: str
    speech_pitch: str
    speech_voice: str | None = None

    @field_validator("speech_rate", "speech_pitch")
    @classmethod
    def _check_speech_scale(cls, value: str) -> str:
        try:
            number = float(value)
        except ValueError as exc:
            raise ValueError("must be a decimal number") from exc
        if not SPEECH_MIN <= number <= SPEECH_MAX:
            raise ValueError(f"must be between {SPEECH_MIN} and {SPEECH_MAX}")
        return value


class SightWordsCreate(_CamelModel):
    user_id: str = Field(default=DEFAULT_USER_ID)
    words: list[str]
    random_order: bool | None = None
    auto_advance: bool | None = None
    speech_enabled: bool | None = None
    speech_rate: str | None = None
    speech_pitch: str | None = None
    speech_voice: str | None = None


class SightWordsRecord(_CamelModel):
    id: int
    user_id: str = Field(default=DEFAULT_USER_ID)
    words: list[str] = Field(default_factory=list)
    random_order: bool = False
    auto_advance: bool = False
    speech_enabled: bool = True
    speech_rate: str = SPEECH_RATE_DEFAULT
    speech_pitch: str = SPEECH_PITCH_DEFAULT
    speech_voice: str | None = None

    def to_update(self) -> SightWordsUpdate:
        return SightWordsUpdate(
            words=list(self.words),
            random_order=self.random_order,
            auto_advance=self.auto_advance,
            speech_enabled=self.speech_enabled,
            speech_rate=self.speech_rate,
            speech_pitch=self.speech_pitch,
            speech_voice=self.speech_voice,
        )


def format_validation_errors(exc: ValidationError) -> dict[str, list[str]]:
    """Group pydantic errors by top-level field, using the JSON field names."""
    errors: dict[str, list[str]] = {}
    for item in exc.errors():
        loc = item.get("loc") or ()
        field = str(loc[0]) if loc else "_errors"
        message = str(item.get("msg") or "invalid value")
        if len(loc) > 1:
            message = f"item {'.'.join(str(part) for part in loc[1:])}: {message}"
        errors.setdefault(field, []).append(message)
    return errors
