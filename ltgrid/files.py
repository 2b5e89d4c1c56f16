"""Small file helpers used by the provider."""
from __future__ import annotations

import asyncio
import base64
from pathlib import Path


def _write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as fh:
        fh.write(data)


def _append_text(path: Path, text: str) -> None:
    with open(path, "a", encoding="utf-8") as fh:
        fh.write(text)


async def save_file(path: str | Path, base64_data: str) -> Path:
    """Decode base64 image data and write it to path, creating parent dirs."""
    path = Path(path)
    data = base64.b64decode(base64_data)
    await asyncio.to_thread(_write_bytes, path, data)
    return path


async def append_line(path: str | Path, text: str) -> None:
    """Append text plus a newline to path."""
    await asyncio.to_thread(_append_text, Path(path), f"{text}\n")
