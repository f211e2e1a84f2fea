# File: parking_reports/infrastructure/storage.py
"""
Download sinks for generated documents

A sink receives a complete byte stream and a filename. Nothing is handed to a
sink until the document has been fully rendered in memory.

1. DownloadSink - interface
2. FileSystemDownloadSink - writes into a directory via temp file + rename
3. InMemoryDownloadSink - keeps files in a dict (tests, previews)
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Union
import logging
import os
import re
import tempfile

from ..application.exceptions import ExportError


_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def safe_filename(filename: str) -> str:
    """Replace path separators and characters most filesystems reject"""
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", filename).strip().lstrip(".")
    if not cleaned:
        raise ExportError(f"Invalid filename: {filename!r}")
    return cleaned


class DownloadSink(ABC):
    """Abstract destination for exported documents"""

    def __init__(self):
        self._logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def save(self, filename: str, data: bytes, content_type: str) -> str:
        """
        Store a complete document
        Returns: location of the stored document
        """
        pass


class FileSystemDownloadSink(DownloadSink):
    """
    Saves documents into a directory

    Data is written to a temporary file in the target directory and renamed
    into place, so a failed write never leaves a partial file behind.
    """

    def __init__(self, directory: Union[str, Path]):
        super().__init__()
        self.directory = Path(directory)

    def save(self, filename: str, data: bytes, content_type: str) -> str:
        target = self.directory / safe_filename(filename)
        tmp_path = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                dir=self.directory, prefix=".", suffix=".part", delete=False
            ) as tmp:
                tmp_path = tmp.name
                tmp.write(data)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_path, target)
        except OSError as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            self._logger.error(f"Failed to save {target}: {e}", exc_info=True)
            raise ExportError(f"Could not save {filename}: {e}") from e

        self._logger.info(f"Saved {content_type} document ({len(data)} bytes) to {target}")
        return str(target)


class InMemoryDownloadSink(DownloadSink):
    """Keeps saved documents in memory, keyed by filename"""

    def __init__(self):
        super().__init__()
        self.files: Dict[str, bytes] = {}
        self.content_types: Dict[str, str] = {}

    def save(self, filename: str, data: bytes, content_type: str) -> str:
        name = safe_filename(filename)
        self.files[name] = bytes(data)
        self.content_types[name] = content_type
        self._logger.debug(f"Stored {name} ({len(data)} bytes)")
        return f"memory://{name}"
