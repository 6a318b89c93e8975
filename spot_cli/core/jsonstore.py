"""
Single-document JSON file storage.

Every cache file under the cache root is one pretty-printed UTF-8 JSON
document managed by a JsonFileStore. Writes replace the whole document:
the new content goes to "<name>.tmp" first and is then renamed over the
target, so readers see either the old or the new document.

Files holding secrets (the metadata file with tokens) are restricted to
mode 0600 on POSIX, both on the temporary file and again after the rename.

A file that exists but cannot be decoded (for example one left truncated
by a crash in an older version) raises DecodeError rather than being
treated as empty.
"""

import json
import os
from pathlib import Path
from typing import Any

from spot_cli.core.exceptions import DecodeError
from spot_cli.core.logger import get_logger


logger = get_logger(__name__)

SECRET_FILE_MODE = 0o600


class JsonFileStore:
    """
    Atomic read/write of one JSON document at a fixed path.

    Attributes:
        path: Location of the document.
        secret: If True, the file is kept owner-readable only.

    Example:
        store = JsonFileStore(cache_root / "pins.json")
        data = store.load() or {"items": []}
        store.save(data)
    """

    def __init__(self, path: Path, secret: bool = False) -> None:
        self.path = Path(path)
        self.secret = secret

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Any | None:
        """
        Read and decode the document.

        Returns:
            The decoded JSON value, or None if the file does not exist.

        Raises:
            DecodeError: If the file cannot be read or is not valid JSON.
        """
        if not self.path.exists():
            return None

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, UnicodeDecodeError) as e:
            raise DecodeError(
                f"failed to read {self.path}",
                details={"file_path": str(self.path), "original_error": str(e)}
            ) from e
        except json.JSONDecodeError as e:
            raise DecodeError(
                f"corrupt cache file {self.path}",
                details={"file_path": str(self.path), "original_error": str(e)},
                hint="delete the file or run `spot sync`"
            ) from e

    def save(self, value: Any) -> None:
        """
        Write the full document, replacing any previous content.

        Args:
            value: JSON-serializable value.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")

        content = json.dumps(value, indent=2, ensure_ascii=False) + "\n"
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(content)
        self._restrict(tmp_path)

        os.replace(tmp_path, self.path)
        self._restrict(self.path)
        logger.debug(f"Wrote {self.path.name}")

    def delete(self) -> bool:
        """Remove the file. Returns True if it existed."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        return True

    def _restrict(self, path: Path) -> None:
        if self.secret and os.name == "posix":
            os.chmod(path, SECRET_FILE_MODE)
