# clipwave/common/path/inputs.py
from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from typing import Optional
from urllib.parse import unquote

from clipwave.common.errors import ValidationError


def normalize_input_path(text: str) -> str:
    """
    Hosts may hand us file URLs (drag & drop). Convert those best-effort to a
    local path; anything else is returned trimmed.
    """
    s = (text or "").strip()
    lower = s.lower()
    if not lower.startswith("file://"):
        return s

    rest = s[8:] if lower.startswith("file:///") else s[7:]
    if rest.lower().startswith("localhost/"):
        rest = rest[10:]
    rest = unquote(rest)

    if os.name == "nt":
        return rest.replace("/", "\\")
    # file:///home/x -> /home/x
    return "/" + rest.lstrip("/")


def ensure_input_file(path: Path | str) -> Path:
    """Validate that 'path' exists and is a regular file. Raises ValidationError if not."""
    p = Path(path)
    if not p.exists():
        raise ValidationError("Input file does not exist")
    if not p.is_file():
        raise ValidationError("Input path is not a file")
    return p


def stable_working_dir() -> Optional[Path]:
    """
    A predictable cwd for child processes: the program's own directory, then the
    user's home, then the temp dir.
    """
    exe_dir = Path(sys.argv[0]).resolve().parent if sys.argv and sys.argv[0] else None
    if exe_dir is not None and exe_dir.is_dir():
        return exe_dir

    home = Path(os.environ.get("USERPROFILE") or Path.home())
    if home.is_dir():
        return home

    tmp = Path(tempfile.gettempdir())
    if tmp.is_dir():
        return tmp
    return None
