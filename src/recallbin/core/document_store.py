"""Filesystem document store with per-user namespaces and an in-memory index."""

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from ..utils.file_lock import FileLocker, FileLockError
from ..utils.yaml_handler import YAMLError, load_document_from_file, save_document_to_file

logger = logging.getLogger(__name__)

ITEMS = "items"
COLLECTIONS = "collections"
USAGE = "usage"

_SAFE_SEGMENT = re.compile(r"^[A-Za-z0-9_.@:-]+$")


class StoreError(Exception):
    """Storage-related error."""

    pass


class DocumentNotFoundError(StoreError):
    """Update targeted a document that does not exist."""

    def __init__(self, path: Tuple[str, ...], doc_id: str):
        super().__init__(f"Document not found: {'/'.join(path)}/{doc_id}")
        self.path = path
        self.doc_id = doc_id


@dataclass
class Document:
    id: str
    data: Dict[str, Any]


def user_collection(user_id: str, name: str) -> Tuple[str, ...]:
    """Path of a collection inside a user's namespace."""
    return ("users", user_id, name)


class DocumentStore:
    """Get/add/set/update/delete/equality-query over YAML documents.

    Layout: ``<root>/<path...>/<doc_id>.yaml``. Each collection path is
    loaded into memory on first access; reads are served from the index
    and writes go to disk first, then to the index. There are no
    transactions: a read followed by a write is not isolated from other
    writers.
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        self.index: Dict[Tuple[str, ...], Dict[str, Dict[str, Any]]] = {}
        self.load_errors: List[str] = []
        self._load_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Ensure the root directory exists and is writable.

        Raises:
            StoreError: If the root cannot be created or written
        """
        try:
            await asyncio.to_thread(self.root.mkdir, parents=True, exist_ok=True)
            probe = self.root / ".recallbin_probe"
            await asyncio.to_thread(probe.touch)
            await asyncio.to_thread(probe.unlink)
        except PermissionError as e:
            raise StoreError(f"Permission denied for store root {self.root}") from e
        except Exception as e:
            raise StoreError(f"Cannot access store root {self.root}: {e}") from e

        logger.info(f"Document store ready at {self.root}")

    def is_accessible(self) -> bool:
        return self.root.is_dir()

    def _dir_for(self, path: Tuple[str, ...]) -> Path:
        for segment in path:
            if not segment or not _SAFE_SEGMENT.match(segment) or segment in {".", ".."}:
                raise StoreError(f"Invalid path segment: {segment!r}")
        return self.root.joinpath(*path)

    def _file_for(self, path: Tuple[str, ...], doc_id: str) -> Path:
        if not doc_id or not _SAFE_SEGMENT.match(doc_id) or doc_id in {".", ".."}:
            raise StoreError(f"Invalid document id: {doc_id!r}")
        return self._dir_for(path) / f"{doc_id}.yaml"

    async def _collection(self, path: Tuple[str, ...]) -> Dict[str, Dict[str, Any]]:
        if path in self.index:
            return self.index[path]

        async with self._load_lock:
            if path in self.index:
                return self.index[path]

            directory = self._dir_for(path)
            docs: Dict[str, Dict[str, Any]] = {}
            files = await asyncio.to_thread(
                lambda: list(directory.glob("*.yaml")) if directory.exists() else []
            )
            for yaml_file in files:
                try:
                    docs[yaml_file.stem] = await asyncio.to_thread(
                        load_document_from_file, yaml_file
                    )
                except YAMLError as e:
                    error_msg = f"Corrupted document {yaml_file}: {e}"
                    logger.warning(error_msg)
                    self.load_errors.append(error_msg)

            logger.debug(f"Loaded {len(docs)} documents from {'/'.join(path)}")
            self.index[path] = docs
            return docs

    async def _write(self, path: Tuple[str, ...], doc_id: str, data: Dict[str, Any]) -> None:
        file_path = self._file_for(path, doc_id)
        try:
            async with FileLocker(file_path):
                await asyncio.to_thread(save_document_to_file, data, file_path)
        except FileLockError as e:
            raise StoreError(f"Could not acquire lock for {doc_id}: {e}") from e
        except YAMLError as e:
            raise StoreError(f"Failed to write document {doc_id}: {e}") from e

        docs = await self._collection(path)
        docs[doc_id] = data

    async def get(self, path: Tuple[str, ...], doc_id: str) -> Optional[Document]:
        docs = await self._collection(path)
        data = docs.get(doc_id)
        if data is None:
            return None
        return Document(id=doc_id, data=dict(data))

    async def add(self, path: Tuple[str, ...], data: Dict[str, Any]) -> str:
        """Insert a document under a store-generated id and return the id."""
        doc_id = str(uuid4())
        await self._write(path, doc_id, dict(data))
        return doc_id

    async def set(self, path: Tuple[str, ...], doc_id: str, data: Dict[str, Any]) -> None:
        """Create or overwrite a document."""
        await self._write(path, doc_id, dict(data))

    async def update(self, path: Tuple[str, ...], doc_id: str, fields: Dict[str, Any]) -> Document:
        """Merge fields into an existing document.

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        docs = await self._collection(path)
        if doc_id not in docs:
            raise DocumentNotFoundError(path, doc_id)

        merged = {**docs[doc_id], **fields}
        await self._write(path, doc_id, merged)
        return Document(id=doc_id, data=dict(merged))

    async def delete(self, path: Tuple[str, ...], doc_id: str) -> bool:
        """Delete a document. Returns False when it did not exist."""
        file_path = self._file_for(path, doc_id)
        docs = await self._collection(path)
        existed = doc_id in docs
        try:
            await asyncio.to_thread(file_path.unlink, missing_ok=True)
        except Exception as e:
            raise StoreError(f"Failed to delete document {doc_id}: {e}") from e
        docs.pop(doc_id, None)
        return existed

    async def query(
        self,
        path: Tuple[str, ...],
        where: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Document]:
        """Equality-filtered, optionally ordered and limited listing."""
        docs = await self._collection(path)
        matches = [
            Document(id=doc_id, data=dict(data))
            for doc_id, data in docs.items()
            if all(data.get(field) == value for field, value in (where or {}).items())
        ]

        if order_by:
            present = [d for d in matches if d.data.get(order_by) is not None]
            missing = [d for d in matches if d.data.get(order_by) is None]
            present.sort(key=lambda d: _sort_value(d.data[order_by]), reverse=descending)
            matches = present + missing

        if limit is not None:
            matches = matches[:limit]
        return matches


def _sort_value(value: Any) -> Any:
    """Order ISO timestamps chronologically rather than lexically."""
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
        except ValueError:
            return value
    if isinstance(value, datetime):
        return value.timestamp()
    return value
