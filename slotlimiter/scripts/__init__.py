"""Lua scripts executed atomically by Redis."""

from __future__ import annotations

from importlib.resources import files


def load_script(name: str) -> str:
    """Return the source of a bundled Lua script by file name."""

    return files(__package__).joinpath(name).read_text(encoding="utf-8")


TOKEN_BUCKET_SCRIPT = load_script("token_bucket.lua")

__all__ = ["TOKEN_BUCKET_SCRIPT", "load_script"]
