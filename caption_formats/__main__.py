"""Allow running the segmenter as ``python -m caption_formats``."""

from .cli import main

main()
