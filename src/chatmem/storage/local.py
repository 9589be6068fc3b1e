"""Filesystem-based conversation storage.

Stores every session and message in one JSON file. Suitable for
development, tests, CLIs and single-process deployments.

Storage layout:
    {file_path}   # {"messages": [...], "sessions": [...], "lastUpdated": ...}
"""

import os
import tempfile
from pathlib import Path

from loguru import logger

from chatmem.storage.config import LocalStorageConfig
from chatmem.storage.snapshot import SnapshotStorage


def _atomic_write_text(path: Path, text: str, encoding: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        "w", encoding=encoding, delete=False, dir=str(path.parent), suffix=".tmp"
    ) as tmp:
        tmp.write(text)
        tmp.flush()
        os.fsync(tmp.fileno())
        tmp_name = tmp.name
    os.replace(tmp_name, path)


class LocalStorage(SnapshotStorage):
    """Single-file JSON storage.

    Writes go to a temp file beside the target and are swapped in with
    os.replace, so readers never see a half-written document.

    Thread-safe: Yes, within one instance
    Process-safe: No (concurrent processes overwrite each other)
    Scalability: Whole file rewritten per write; fine for thousands of messages
    """

    def __init__(self, config: LocalStorageConfig):
        """Initialize local storage.

        Args:
            config: File path, encoding and formatting options
        """
        super().__init__(pretty_print=config.pretty_print)
        self.config = config
        self.path = Path(os.path.expanduser(config.file_path)).resolve()

    def _read_document(self) -> str | None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            logger.info(f"No data file at {self.path}, starting empty")
            return None
        return self.path.read_text(encoding=self.config.encoding)

    def _write_document(self, text: str) -> None:
        _atomic_write_text(self.path, text, self.config.encoding)
