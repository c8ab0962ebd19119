# storefront/core/local_storage.py
"""
File-backed key/value storage with the same surface as the browser's
localStorage: string keys, string values.

Each key lives in its own file under the storage directory, so a write
only touches the cart that changed. Writes go through a temp file and
`os.replace` so a crash mid-write leaves the previous value intact.
"""

import logging
import os
import tempfile
from pathlib import Path
from urllib.parse import quote

logger = logging.getLogger(__name__)


class LocalStorage:
    def __init__(self, root: str | os.PathLike[str]):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / f"{quote(key, safe='')}.item"

    def get_item(self, key: str) -> str | None:
        try:
            return self._path(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError:
            logger.error("Local storage entry %r is unreadable; ignoring it", key)
            return None

    def set_item(self, key: str, value: str) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.root, prefix=".ls-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
            os.replace(tmp, self._path(key))
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class MemoryStorage:
    """Process-local storage with the LocalStorage surface."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)
