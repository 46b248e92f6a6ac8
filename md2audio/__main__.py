"""Module entrypoint for running md2audio as ``python -m md2audio``."""

from __future__ import annotations

from md2audio.cli import main


if __name__ == "__main__":
    main()
