"""Module entrypoint for running slotlimiter as ``python -m slotlimiter``."""

from __future__ import annotations

from slotlimiter.cli import main


if __name__ == "__main__":
    main()
