"""
Blob content storage.

Raw transcript bytes are stored under generated keys. A BlobStore offers
put/get/delete/list; two implementations are provided: a local directory
store and an in-memory store.
"""

import os
import tempfile
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Dict, List, Tuple, Union

from transcript_vault import dates
from transcript_vault.errors import ConflictError, NotFoundError, UnavailableError, ValidationError
from transcript_vault.logger import get_default_logger


logger = get_default_logger()


DEFAULT_CONTENT_TYPE = "application/json"
_TEMP_SUFFIX = ".partial"


@dataclass(frozen=True)
class PutResult:
    """Location and key of a stored blob."""
    location: str
    key: str


@dataclass(frozen=True)
class BlobObject:
    """Listing entry for a stored blob."""
    key: str
    uploaded_at: str
    size: int


def validate_key(key: str) -> str:
    """
    Check that a blob key is a relative, normalized POSIX path.

    Raises:
        ValidationError: If the key is empty, absolute, or escapes the store
    """
    if not isinstance(key, str) or not key.strip():
        raise ValidationError("Blob key must be a non-empty string", fields=["key"])
    path = PurePosixPath(key)
    if path.is_absolute() or ".." in path.parts or key.endswith("/"):
        raise ValidationError(f"Invalid blob key: {key!r}", fields=["key"])
    return key


class BlobStore(ABC):
    """
    Abstract base class for blob stores.

    Keys are unique; put never overwrites an existing blob.
    """

    name: str = "base"

    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str = DEFAULT_CONTENT_TYPE) -> PutResult:
        """
        Store bytes under a new key.

        Raises:
            ConflictError: If a blob already exists under the key
            UnavailableError: If the backend cannot be written
        """
        raise NotImplementedError("Subclasses must implement put()")

    @abstractmethod
    def get(self, key: str) -> bytes:
        """
        Read the bytes stored under a key.

        Raises:
            NotFoundError: If no blob exists under the key
        """
        raise NotImplementedError("Subclasses must implement get()")

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete a blob. Deleting a missing key is not an error."""
        raise NotImplementedError("Subclasses must implement delete()")

    @abstractmethod
    def list(self, prefix: str = "") -> List[BlobObject]:
        """List blobs whose key starts with `prefix`, sorted by key."""
        raise NotImplementedError("Subclasses must implement list()")

    @abstractmethod
    def location(self, key: str) -> str:
        """Public location (URI) of the blob stored under a key."""
        raise NotImplementedError("Subclasses must implement location()")

    def exists(self, key: str) -> bool:
        try:
            self.get(key)
        except NotFoundError:
            return False
        return True


class LocalBlobStore(BlobStore):
    """Blob store backed by files under a root directory."""

    name = "local"

    def __init__(self, root: Union[str, Path]):
        """
        Initialize local blob store.

        Args:
            root: Directory holding the blobs (created if missing)
        """
        self.root = Path(root)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise UnavailableError(
                f"Cannot create blob store root {self.root}: {e}", operation="init"
            ) from e
        logger.debug(f"Initialized LocalBlobStore at {self.root}")

    def _path(self, key: str) -> Path:
        return self.root.joinpath(*PurePosixPath(validate_key(key)).parts)

    def location(self, key: str) -> str:
        return self._path(key).resolve().as_uri()

    def put(self, key: str, data: bytes, content_type: str = DEFAULT_CONTENT_TYPE) -> PutResult:
        path = self._path(key)
        if path.exists():
            raise ConflictError(f"Blob already exists: {key}", operation="put", details={"key": key})

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(dir=path.parent, suffix=_TEMP_SUFFIX)
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                os.replace(temp_name, path)
            except BaseException:
                Path(temp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise UnavailableError(
                f"Failed to write blob {key}: {e}", operation="put", details={"key": key}
            ) from e

        logger.debug(f"Stored blob {key} ({len(data)} bytes, {content_type})")
        return PutResult(location=self.location(key), key=key)

    def get(self, key: str) -> bytes:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError(f"Blob not found: {key}", operation="get", details={"key": key}) from e
        except OSError as e:
            raise UnavailableError(
                f"Failed to read blob {key}: {e}", operation="get", details={"key": key}
            ) from e

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise UnavailableError(
                f"Failed to delete blob {key}: {e}", operation="delete", details={"key": key}
            ) from e

        # Prune empty per-source directories, never the root itself
        parent = path.parent
        while parent != self.root and self.root in parent.parents:
            try:
                parent.rmdir()
            except OSError:
                break
            parent = parent.parent

    def list(self, prefix: str = "") -> List[BlobObject]:
        objects = []
        try:
            for path in self.root.rglob("*"):
                if not path.is_file() or path.name.endswith(_TEMP_SUFFIX):
                    continue
                key = path.relative_to(self.root).as_posix()
                if not key.startswith(prefix):
                    continue
                stat = path.stat()
                modified = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
                objects.append(BlobObject(
                    key=key,
                    uploaded_at=dates.format_database_date(modified),
                    size=stat.st_size,
                ))
        except OSError as e:
            raise UnavailableError(f"Failed to list blobs under {prefix!r}: {e}", operation="list") from e

        return sorted(objects, key=lambda obj: obj.key)


class InMemoryBlobStore(BlobStore):
    """Blob store kept in process memory. Contents are lost on exit."""

    name = "memory"

    def __init__(self):
        self._blobs: Dict[str, Tuple[bytes, str, str]] = {}
        self._lock = threading.Lock()

    def location(self, key: str) -> str:
        return f"memory://{validate_key(key)}"

    def put(self, key: str, data: bytes, content_type: str = DEFAULT_CONTENT_TYPE) -> PutResult:
        validate_key(key)
        with self._lock:
            if key in self._blobs:
                raise ConflictError(f"Blob already exists: {key}", operation="put", details={"key": key})
            self._blobs[key] = (bytes(data), content_type, dates.now())
        return PutResult(location=self.location(key), key=key)

    def get(self, key: str) -> bytes:
        with self._lock:
            entry = self._blobs.get(key)
        if entry is None:
            raise NotFoundError(f"Blob not found: {key}", operation="get", details={"key": key})
        return entry[0]

    def content_type(self, key: str) -> str:
        with self._lock:
            entry = self._blobs.get(key)
        if entry is None:
            raise NotFoundError(f"Blob not found: {key}", operation="get", details={"key": key})
        return entry[1]

    def delete(self, key: str) -> None:
        with self._lock:
            self._blobs.pop(key, None)

    def list(self, prefix: str = "") -> List[BlobObject]:
        with self._lock:
            snapshot = list(self._blobs.items())
        return sorted(
            (
                BlobObject(key=key, uploaded_at=uploaded_at, size=len(data))
                for key, (data, _, uploaded_at) in snapshot
                if key.startswith(prefix)
            ),
            key=lambda obj: obj.key,
        )


BLOB_STORES = {
    LocalBlobStore.name: LocalBlobStore,
    InMemoryBlobStore.name: InMemoryBlobStore,
}


def get_blob_store(name: str, **kwargs) -> BlobStore:
    """
    Construct a blob store by name.

    Args:
        name: "local" or "memory"
        **kwargs: Constructor arguments (e.g. root for "local")

    Raises:
        ValueError: If the name is unknown
    """
    store_class = BLOB_STORES.get(name)
    if store_class is None:
        available = ", ".join(BLOB_STORES)
        raise ValueError(f"Invalid blob store name: {name}. Available: {available}")
    return store_class(**kwargs)
