from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List

from filelock import FileLock

from adapters.filesystem.json_utils import load_json_object, write_json_atomic
from domain.models import CanvasDocument
from domain.ports.repositories import CanvasRepository

logger = logging.getLogger(__name__)

DOCUMENT_PATTERNS = ("*.canvas.json", "*.json")


class FileSystemCanvasRepository(CanvasRepository):
    def load_all(self, directory: Path) -> List[CanvasDocument]:
        return [document for _, document in self.load_all_with_paths(directory)]

    def load_all_with_paths(self, directory: Path) -> List[tuple[Path, CanvasDocument]]:
        documents: List[tuple[Path, CanvasDocument]] = []
        for path in sorted(self._iter_paths(directory)):
            documents.append((path, self.load_by_path(path)))
        return documents

    def load_by_path(self, path: Path) -> CanvasDocument:
        if not path.exists():
            msg = f"Canvas document not found: {path}"
            raise FileNotFoundError(msg)
        return CanvasDocument.model_validate(load_json_object(path))

    def save(self, document: CanvasDocument, path: Path) -> None:
        lock_path = path.with_suffix(f"{path.suffix}.lock")
        with FileLock(str(lock_path)):
            write_json_atomic(path, document.model_dump(mode="json", by_alias=True))
        logger.debug("Saved canvas document with %s artboards to %s", len(document.artboards), path)

    def _iter_paths(self, directory: Path) -> Iterable[Path]:
        seen: set[Path] = set()
        for pattern in DOCUMENT_PATTERNS:
            for path in directory.glob(pattern):
                if path.is_file() and path not in seen:
                    seen.add(path)
                    yield path
