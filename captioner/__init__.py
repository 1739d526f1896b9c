"""Captioner: burn multi-language captions into video.

WHY: Short-form video needs captions in several languages at once, drawn
into the pixels so every player shows them. This package takes a word
list from a speech-to-text provider, segments and translates it into
per-language tracks, and drives ffmpeg to burn all tracks into one video.

HOW: Three layers on top of the caption_formats library:
  core     — caption-set editing, translation contract, project files,
             companion SRT import/export
  render   — probe, filter graph, progress parsing, encoders, orchestrator
  server   — in-memory render job store and FastAPI HTTP API
plus a CLI (python -m captioner) and logging/config setup.

RULES:
- caption_formats stays pure; all file and process I/O lives here.
- Render failures surface as RenderResult, never as uncaught exceptions.
- Configuration comes from the environment (.env via python-dotenv).
"""

__version__ = "0.1.0"
