"""Font directory setup for subtitle rendering.

WHY: Caption styles name font families that may only exist in the app's
bundled font files. libass has to be able to find them: the system
encoder gets the directory through fontsdir=, the bundled encoder through
a fontconfig configuration file. Setting this up once per process is an
explicit step on a caller-owned object, not hidden global state.

HOW: FontConfig.initialize() copies bundled .ttf/.otf files into the
fonts directory (skipping files already there) and marks itself
initialized; later calls return immediately. write_fonts_conf() writes a
fonts.conf that lists the fonts directory and a cache directory.
font_display_name() turns a file name into the family name users pick.

RULES:
- initialize() is idempotent and never overwrites an existing font file.
- A missing bundled directory is not an error (nothing to copy).
- Display names: CamelCase split into words, "-Regular" dropped,
  other variants appended ("Montserrat-Bold.ttf" -> "Montserrat Bold").
"""

from __future__ import annotations

import logging
import re
import shutil
import threading
from pathlib import Path
from typing import Dict, List, Optional, Union

logger = logging.getLogger(__name__)

FONT_SUFFIXES = (".ttf", ".otf")

_CAMEL_RE = re.compile(r"([a-z])([A-Z])")

FONTS_CONF_TEMPLATE = """<?xml version="1.0"?>
<!DOCTYPE fontconfig SYSTEM "fonts.dtd">
<fontconfig>
    <include ignore_missing="yes">/etc/fonts/fonts.conf</include>
    <dir>{fonts_dir}</dir>
    <match target="pattern">
        <test qual="any" name="family"><string>sans-serif</string></test>
        <edit name="family" mode="assign" binding="same"><string>Roboto</string></edit>
    </match>
    <cachedir>{cache_dir}</cachedir>
</fontconfig>
"""


def font_display_name(filename: str) -> str:
    """Family name for a font file, e.g. "BebasNeue-Regular.ttf" -> "Bebas Neue"."""
    name = Path(filename).name
    for suffix in FONT_SUFFIXES:
        if name.lower().endswith(suffix):
            name = name[: -len(suffix)]
            break

    parts = name.split("-")
    base = _CAMEL_RE.sub(r"\1 \2", parts[0])
    variant = parts[1] if len(parts) > 1 else ""

    if variant and variant.lower() != "regular":
        return "{} {}".format(base, variant)
    return base


class FontConfig:
    """Caller-owned font setup shared by one process's encoders.

    Attributes:
        fonts_dir: Directory libass/fontconfig reads fonts from.
        bundled_dir: Directory of fonts shipped with the app, if any.
    """

    def __init__(
        self,
        fonts_dir: Union[str, Path],
        bundled_dir: Optional[Union[str, Path]] = None,
    ) -> None:
        self.fonts_dir = Path(fonts_dir)
        self.bundled_dir = Path(bundled_dir) if bundled_dir else None
        self._initialized = False
        self._lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> Path:
        """Create the fonts directory and copy bundled fonts into it.

        Returns:
            The fonts directory.
        """
        with self._lock:
            if self._initialized:
                return self.fonts_dir

            self.fonts_dir.mkdir(parents=True, exist_ok=True)
            copied = 0
            for source in self._bundled_files():
                target = self.fonts_dir / source.name
                if target.exists():
                    continue
                shutil.copyfile(source, target)
                copied += 1
                logger.debug("Copied font %s to %s", source.name, target)

            self._initialized = True

        logger.info("Fonts ready in %s (%d copied)", self.fonts_dir, copied)
        return self.fonts_dir

    def _bundled_files(self) -> List[Path]:
        if self.bundled_dir is None or not self.bundled_dir.is_dir():
            return []
        return sorted(
            p for p in self.bundled_dir.iterdir()
            if p.is_file() and p.suffix.lower() in FONT_SUFFIXES
        )

    def write_fonts_conf(self) -> Path:
        """Write fonts.conf into the fonts directory and return its path."""
        self.fonts_dir.mkdir(parents=True, exist_ok=True)
        cache_dir = self.fonts_dir / "fc_cache"
        cache_dir.mkdir(exist_ok=True)

        conf_path = self.fonts_dir / "fonts.conf"
        conf_path.write_text(
            FONTS_CONF_TEMPLATE.format(
                fonts_dir=self.fonts_dir.resolve(), cache_dir=cache_dir.resolve()
            ),
            encoding="utf-8",
        )
        return conf_path

    def available_fonts(self) -> Dict[str, str]:
        """Display name -> file name for every font in the fonts directory."""
        if not self.fonts_dir.is_dir():
            return {}
        fonts = {}  # type: Dict[str, str]
        for path in sorted(self.fonts_dir.iterdir()):
            if path.is_file() and path.suffix.lower() in FONT_SUFFIXES:
                fonts[font_display_name(path.name)] = path.name
        return fonts
