"""Configuration constants, language names, and .env loading.

WHY: Centralizes every configurable value so it is easy to find, update
and override. The ffmpeg binary, the encoder flavour, font directories,
default resolution and log location differ per machine, so they come from
the environment instead of being buried in logic.

HOW: python-dotenv loads the .env file on import. Constants are module
level dicts, sets and strings. create_encoder() and create_font_config()
build the configured render collaborators.

RULES:
- SUPPORTED_LANGUAGES maps ISO 639-1 code -> display name (15 languages)
- Unknown codes display as the code itself
- SUPPORTED_VIDEO_FORMATS lists accepted input extensions (lowercase, dot)
- CAPTIONER_ENCODER is "system" (ffmpeg on PATH) or "session" (bundled)
- All defaults can be overridden via environment variables
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env from the project root (where the app is run from)
load_dotenv()

# ---------------------------------------------------------------------------
# Languages
# ---------------------------------------------------------------------------

SUPPORTED_LANGUAGES: dict[str, str] = {
    "en": "English",
    "pt": "Portuguese",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "ja": "Japanese",
    "ko": "Korean",
    "zh": "Chinese",
    "ru": "Russian",
    "ar": "Arabic",
    "hi": "Hindi",
    "vi": "Vietnamese",
    "th": "Thai",
    "id": "Indonesian",
}


def language_name(code: str) -> str:
    """Display name for a language code, or the code itself if unknown."""
    return SUPPORTED_LANGUAGES.get(code, code)


# ---------------------------------------------------------------------------
# Supported input video extensions
# ---------------------------------------------------------------------------

SUPPORTED_VIDEO_FORMATS: set[str] = {
    ".mp4", ".mov", ".m4v", ".mkv", ".webm", ".avi",
}
"""Video file extensions accepted for rendering (lowercase, with dot)."""

# ---------------------------------------------------------------------------
# Encoder and fonts
# ---------------------------------------------------------------------------

FFMPEG_BINARY = os.getenv("CAPTIONER_FFMPEG", "ffmpeg")
ENCODER_KIND = os.getenv("CAPTIONER_ENCODER", "system").lower()
BUNDLED_FFMPEG = os.getenv("CAPTIONER_BUNDLED_FFMPEG", "")
FONTS_DIR = os.getenv(
    "CAPTIONER_FONTS_DIR",
    str(Path.home() / ".captioner" / "fonts"),
)
BUNDLED_FONTS_DIR = os.getenv("CAPTIONER_BUNDLED_FONTS_DIR", "")

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_RESOLUTION = os.getenv("CAPTIONER_DEFAULT_RESOLUTION", "original")
DEFAULT_MAX_CHARS = int(os.getenv("CAPTIONER_MAX_CHARS", "25"))
DEFAULT_ORIGINAL_LANGUAGE = os.getenv("CAPTIONER_ORIGINAL_LANGUAGE", "en")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_FILE = os.getenv("CAPTIONER_LOG_FILE", "")
LOG_LEVEL = os.getenv("CAPTIONER_LOG_LEVEL", "INFO").upper()


def create_font_config(fonts_dir: Optional[str] = None):
    """Build a FontConfig from CAPTIONER_FONTS_DIR / CAPTIONER_BUNDLED_FONTS_DIR."""
    from captioner.render.fonts import FontConfig

    return FontConfig(
        fonts_dir=Path(fonts_dir or FONTS_DIR),
        bundled_dir=Path(BUNDLED_FONTS_DIR) if BUNDLED_FONTS_DIR else None,
    )


def create_encoder(kind: Optional[str] = None, font_config=None):
    """Build the configured encoder.

    WHY: Desktop installs call the system ffmpeg; packaged builds ship their
    own binary and drive it through a session object. Callers should not
    need to know which one is in use.

    HOW: "system" -> SystemFfmpegEncoder(CAPTIONER_FFMPEG);
    "session" -> SessionFfmpegEncoder around a BundledBinarySession for
    CAPTIONER_BUNDLED_FFMPEG (falls back to CAPTIONER_FFMPEG).

    Raises:
        ValueError: If the encoder kind is not recognized.
    """
    from captioner.render.ffmpeg import SystemFfmpegEncoder
    from captioner.render.session import BundledBinarySession, SessionFfmpegEncoder

    kind = (kind or ENCODER_KIND).lower()
    if kind == "system":
        return SystemFfmpegEncoder(binary=FFMPEG_BINARY, font_config=font_config)
    if kind == "session":
        session = BundledBinarySession(BUNDLED_FFMPEG or FFMPEG_BINARY)
        return SessionFfmpegEncoder(session=session, font_config=font_config)
    raise ValueError(
        "Unknown encoder '{}'. Available: system, session".format(kind)
    )
