from __future__ import annotations

from pathlib import Path

from clipwave.common.errors import ValidationError
from clipwave.common.timecode import time_for_filename


def build_output_path(
    input_path: Path | str,
    mode: str,
    in_text: str,
    out_text: str,
    *,
    default_ext: str = "mp4",
) -> Path:
    """
    Domain policy for where a clip lands: next to its source, named
    `<stem>_clip_<mode>_<in>_<out>.<ext>`.
    """
    src = Path(input_path)
    if not src.stem:
        raise ValidationError("Could not determine input filename")
    ext = src.suffix.lstrip(".") or default_ext
    name = f"{src.stem}_clip_{mode}_{time_for_filename(in_text)}_{time_for_filename(out_text)}.{ext}"
    return src.parent / name


def next_free_path(base: Path, max_attempts: int = 999) -> Path:
    """
    Return `base` if free, else `<stem> (1).<ext>`, `<stem> (2).<ext>`, ...
    After `max_attempts` the last candidate is returned and will be overwritten.
    """
    if not base.exists():
        return base
    candidate = base
    for i in range(1, max_attempts + 1):
        candidate = base.with_name(f"{base.stem} ({i}){base.suffix}")
        if not candidate.exists():
            break
    return candidate
