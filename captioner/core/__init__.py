"""Caption-set editing, project files and companion SRT handling.

WHY: These are the application-level operations around the pure
caption_formats library: everything that edits a whole caption set,
talks to the translation collaborator, or touches files other than the
video itself.

HOW: tracks.py edits cue lists and enforces the translation contract,
project.py reads and writes schema-validated project JSON,
companions.py exports and auto-imports <stem>.<lang>.srt files.

RULES:
- Edits return new lists; cue lists are never mutated in place
- Project JSON is validated on every load and save
"""
