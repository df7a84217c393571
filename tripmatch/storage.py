"""Named JSON slots on disk: the persisted tier for viewed ids and cached searches."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class JsonSlot:
    """A single JSON document stored at a fixed path.

    Reads never raise: a missing, unreadable, or corrupted file yields the
    caller's default. Writes replace the file atomically and raise OSError
    so callers can decide whether the failure matters.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def read(self, default: Any = None) -> Any:
        if not self.path.exists():
            return default
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as exc:
            logger.warning("Ignoring unreadable slot %s: %s", self.path, exc)
            return default

    def write(self, value: Any) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(value, f, default=str)
            os.replace(tmp, self.path)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise

    def remove(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
