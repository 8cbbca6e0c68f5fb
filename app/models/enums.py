"""Enum types mirroring PostgreSQL custom enums."""

from enum import Enum


class Platform(str, Enum):
    """Source platform of an imported post."""
    youtube = "youtube"
    tiktok = "tiktok"
    instagram = "instagram"
    facebook = "facebook"


class Device(str, Enum):
    """Device class recorded with a click."""
    desktop = "desktop"
    mobile = "mobile"


class RehostMethod(str, Enum):
    """Which tier of the rehost ladder produced the stored image URL."""
    bytes = "bytes"
    remote_url = "remote_url"
    passthrough = "passthrough"
    skipped = "skipped"
