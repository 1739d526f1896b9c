"""Package entry point for ``python -m captioner``.

WHY: Users run the captioner as ``python -m captioner render clip.mp4
--project clip.captions.json``; Python's ``-m`` flag executes this file.

HOW: Delegates to the CLI's main().
"""

from captioner.cli import main

if __name__ == "__main__":
    main()
