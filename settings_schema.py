import math
from typing import Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ValidationError, field_validator


class SettingsSchema(BaseModel):
    timezone: str = "UTC"
    time_format: Literal["12h", "24h"] = "24h"
    language: str = "en"
    weight_step: float = 2.5
    default_avatar_color: str = "#888888"
    lastSelectedUserID: Optional[str] = None
    lastSelectedExerciseID: Optional[str] = None
    app_version: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def _known_zone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown time zone: {value}")
        return value

    @field_validator("weight_step")
    @classmethod
    def _positive_step(cls, value: float) -> float:
        if not math.isfinite(value) or value <= 0:
            raise ValueError("weight_step must be positive")
        return value


def validate_settings(data: dict) -> None:
    try:
        SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
