# clipwave/services/binaries/resolver.py
from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional

from clipwave.common.errors import ConfigurationError
from clipwave.common.logging import get_logger
from clipwave.common.settings import BinariesConfig

logger = get_logger(__name__)


@dataclass(frozen=True)
class ResolvedBinaries:
    ffmpeg: Path
    ffprobe: Path
    # Directory actually used; "" when falling back to PATH lookup.
    bin_dir_used: str


class BinaryResolver:
    """
    Locates ffmpeg/ffprobe. Order:
      1) the hint directory (validated first; misconfiguration is an error)
      2) the bundled per-user install folder, then <program dir>/bin
      3) override directories named by environment variables
      4) the program directory and its parent: `<root>/bin`, then versioned
         `ffmpeg-*essentials_build*/bin` children
      5) bare names, left to the OS PATH lookup
    """

    def __init__(
        self,
        cfg: Optional[BinariesConfig] = None,
        *,
        environ: Optional[Mapping[str, str]] = None,
        program_dir: Optional[Path] = None,
        platform: Optional[str] = None,
    ) -> None:
        self.cfg = cfg or BinariesConfig()
        self._environ = environ if environ is not None else os.environ
        self._program_dir = program_dir
        self._platform = platform or sys.platform

    # ---- names ----------------------------------------------------------------
    @property
    def is_windows(self) -> bool:
        return self._platform.startswith("win")

    def exe_name(self, tool: str) -> str:
        return f"{tool}.exe" if self.is_windows else tool

    def looks_like_bin_dir(self, d: Path) -> bool:
        return (d / self.exe_name("ffmpeg")).is_file() and (d / self.exe_name("ffprobe")).is_file()

    # ---- validation -------------------------------------------------------------
    def validate_hint(self, hint: str) -> None:
        """
        An empty hint is fine (auto-resolve). A non-empty one must be an existing
        directory holding both executables.
        """
        dir_str = (hint or "").strip()
        if not dir_str:
            return
        d = Path(dir_str)
        if not d.exists():
            raise ConfigurationError("FFmpeg bin folder does not exist", path=dir_str)
        if not d.is_dir():
            raise ConfigurationError("FFmpeg bin folder is not a directory", path=dir_str)
        for tool in ("ffmpeg", "ffprobe"):
            name = self.exe_name(tool)
            if not (d / name).is_file():
                raise ConfigurationError(f"FFmpeg bin folder must contain {name}", path=str(d / name))

    # ---- resolution ---------------------------------------------------------------
    def resolve(self, hint: str = "") -> ResolvedBinaries:
        self.validate_hint(hint)

        dir_str = (hint or "").strip()
        if dir_str:
            return self._in_dir(Path(dir_str))

        found = self.auto_detect()
        if found is not None:
            return self._in_dir(found)

        logger.debug("no ffmpeg bin dir found; relying on PATH")
        return ResolvedBinaries(Path(self.exe_name("ffmpeg")), Path(self.exe_name("ffprobe")), "")

    def auto_detect(self) -> Optional[Path]:
        for candidate in self._bundled_dirs():
            if self.looks_like_bin_dir(candidate):
                return candidate

        for key in self.cfg.bin_dir_env_vars:
            v = (self._environ.get(key) or "").strip()
            if v and self.looks_like_bin_dir(Path(v)):
                logger.debug("ffmpeg bin dir from $%s: %s", key, v)
                return Path(v)

        for root in self._search_roots():
            found = self._scan_root(root)
            if found is not None:
                return found
        return None

    # ---- internals ------------------------------------------------------------------
    def _in_dir(self, d: Path) -> ResolvedBinaries:
        return ResolvedBinaries(d / self.exe_name("ffmpeg"), d / self.exe_name("ffprobe"), str(d))

    def _program_root(self) -> Optional[Path]:
        if self._program_dir is not None:
            return self._program_dir
        exe = sys.argv[0] if sys.argv and sys.argv[0] else ""
        return Path(exe).resolve().parent if exe else None

    def _user_data_dir(self) -> Optional[Path]:
        if self.is_windows:
            base = self._environ.get("LOCALAPPDATA")
            return Path(base) if base else None
        base = self._environ.get("XDG_DATA_HOME")
        if base:
            return Path(base)
        home = self._environ.get("HOME")
        return Path(home) / ".local" / "share" if home else None

    def _bundled_dirs(self) -> List[Path]:
        out: List[Path] = []
        data = self._user_data_dir()
        if data is not None:
            out.append(data / self.cfg.bundled_app_dir_name / "bin")
        root = self._program_root()
        if root is not None:
            out.append(root / "bin")
        return out

    def _search_roots(self) -> List[Path]:
        root = self._program_root()
        if root is None:
            return []
        if root.parent == root:
            return [root]
        return [root, root.parent]

    def _scan_root(self, root: Path) -> Optional[Path]:
        quick = root / "bin"
        if self.looks_like_bin_dir(quick):
            return quick
        try:
            it = os.scandir(root)
        except OSError:
            return None
        with it:
            for i, entry in enumerate(it):
                if i >= self.cfg.scan_limit:
                    break
                if not entry.is_dir():
                    continue
                name = entry.name
                if name.startswith(self.cfg.versioned_dir_prefix) and self.cfg.versioned_dir_marker in name:
                    candidate = Path(entry.path) / "bin"
                    if self.looks_like_bin_dir(candidate):
                        return candidate
        return None
