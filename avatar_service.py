from __future__ import annotations
import io
import logging
from typing import Optional
from PIL import Image, ImageDraw, UnidentifiedImageError
from db import SettingsRepository, UserRepository
from models import User

logger = logging.getLogger(__name__)

PRESET_AVATARS = [
    "person.fill",
    "person.circle.fill",
    "figure.run",
    "figure.strengthtraining.traditional",
    "dumbbell.fill",
    "heart.fill",
    "star.fill",
    "bolt.fill",
    "flame.fill",
    "trophy.fill",
]

JPEG_QUALITY = 70


class AvatarService:
    """Manage user photos, preset avatars and the generated default avatar."""

    def __init__(self, users: UserRepository, settings_repo: SettingsRepository) -> None:
        self._users = users
        self._settings = settings_repo
        self._defaults: dict[str, bytes] = {}

    def _generate_avatar(self, color: str) -> bytes:
        img = Image.new("RGBA", (64, 64), (255, 255, 255, 0))
        draw = ImageDraw.Draw(img)
        draw.ellipse((8, 8, 56, 56), fill=color)
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()

    def get_default(self) -> bytes:
        color = self._settings.get_text("default_avatar_color", "#888888")
        if color not in self._defaults:
            self._defaults[color] = self._generate_avatar(color)
        return self._defaults[color]

    @staticmethod
    def normalize_photo(data: bytes) -> bytes:
        """Re-encode an uploaded image as JPEG."""
        try:
            img = Image.open(io.BytesIO(data))
            img.load()
        except (UnidentifiedImageError, OSError) as e:
            raise ValueError("photo is not a readable image") from e
        buf = io.BytesIO()
        img.convert("RGB").save(buf, format="JPEG", quality=JPEG_QUALITY)
        return buf.getvalue()

    def set_photo(self, user_id: str, data: bytes) -> None:
        self._users.set_photo(user_id, self.normalize_photo(data))
        logger.debug("Stored photo for user %s", user_id)

    def set_symbol(self, user_id: str, symbol: Optional[str]) -> None:
        if symbol is not None and symbol not in PRESET_AVATARS:
            raise ValueError(f"unknown avatar: {symbol}")
        self._users.set_avatar_symbol(user_id, symbol)

    def clear(self, user_id: str) -> None:
        self._users.clear_avatar(user_id)

    def describe(self, user: User) -> dict:
        """Return which avatar is shown for ``user``: photo, then symbol, then default."""
        if user.photo:
            return {"kind": "photo", "media_type": "image/jpeg"}
        if user.avatar_symbol:
            return {"kind": "symbol", "symbol": user.avatar_symbol}
        return {"kind": "default", "media_type": "image/png"}

    def image_for(self, user: User) -> tuple[bytes, str] | None:
        """Return image bytes and media type, or None when a preset symbol is shown."""
        kind = self.describe(user)["kind"]
        if kind == "photo":
            return user.photo, "image/jpeg"
        if kind == "symbol":
            return None
        return self.get_default(), "image/png"
