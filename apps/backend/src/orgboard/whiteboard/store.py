"""File based whiteboard storage: one JSON document per board."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional

from .schema import Whiteboard
from .validation import ensure_valid_tree

logger = logging.getLogger(__name__)


def atomic_write_text(path: Path, content: str) -> None:
    """Write to a temp file beside *path*, then replace it in one step."""
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.",
        suffix=".tmp",
        dir=str(path.parent),
    )
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    finally:
        tmp_path.unlink(missing_ok=True)


class WhiteboardStore:
    """Stores whiteboards as camelCase JSON files keyed by board id."""

    def __init__(self, base_dir: Path):
        self.base_dir = base_dir
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    def _path(self, whiteboard_id: str) -> Path:
        return self.base_dir / f"{whiteboard_id}.json"

    def save(self, whiteboard: Whiteboard) -> str:
        """Save a whiteboard and return its ID."""
        with self._lock:
            atomic_write_text(
                self._path(whiteboard.id),
                whiteboard.model_dump_json(by_alias=True, indent=2),
            )
        logger.debug("Saved whiteboard %s", whiteboard.id)
        return whiteboard.id

    def load(self, whiteboard_id: str) -> Optional[Whiteboard]:
        """Load a whiteboard by ID.

        Raises TreeIntegrityError when the stored tree breaks the structural
        invariants, rather than handing a corrupt tree to the editor.
        """
        with self._lock:
            filepath = self._path(whiteboard_id)
            if not filepath.exists():
                return None
            data = json.loads(filepath.read_text(encoding="utf-8"))

        whiteboard = Whiteboard.model_validate(data)
        ensure_valid_tree(whiteboard.root_node, whiteboard.kind)
        return whiteboard

    def list_whiteboards(self) -> list[Whiteboard]:
        """List all whiteboards, most recently updated first.

        Files that fail to parse or validate are skipped with a warning.
        """
        with self._lock:
            paths = sorted(self.base_dir.glob("*.json"))

        whiteboards: list[Whiteboard] = []
        for filepath in paths:
            try:
                whiteboard = self.load(filepath.stem)
            except ValueError as exc:
                logger.warning("Skipping unreadable whiteboard %s: %s", filepath.name, exc)
                continue
            if whiteboard is not None:
                whiteboards.append(whiteboard)

        whiteboards.sort(key=lambda wb: wb.updated_at, reverse=True)
        return whiteboards

    def delete(self, whiteboard_id: str) -> bool:
        """Delete a whiteboard. Returns True if it existed."""
        with self._lock:
            filepath = self._path(whiteboard_id)
            if filepath.exists():
                filepath.unlink()
                return True
            return False
