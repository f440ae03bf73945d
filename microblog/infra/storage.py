import logging
from pathlib import Path
from typing import Protocol

from microblog.domain.errors import NotFoundError, StorageError

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    def upload(self, data: bytes, path: str, content_type: str) -> str: ...

    def download(self, path: str) -> bytes: ...

    def delete(self, path: str) -> None: ...


class LocalBlobStore:
    """Filesystem blob store served by the app under ``/images/``.

    Uploads overwrite whatever is at the same path. Content types are not
    stored; the static file server derives them from the extension.
    """

    def __init__(self, root: Path, base_url: str) -> None:
        self._root = root / "images"
        self._base_url = base_url.rstrip("/")

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, path: str) -> Path:
        rel = path.lstrip("/")
        if not rel:
            raise StorageError("empty_blob_path")
        target = (self._root / rel).resolve()
        if not target.is_relative_to(self._root.resolve()):
            raise StorageError(f"blob_path_outside_root:{path}")
        return target

    def url_for(self, path: str) -> str:
        return f"{self._base_url}/images/{path.lstrip('/')}"

    def upload(self, data: bytes, path: str, content_type: str) -> str:
        target = self._resolve(path)
        tmp = target.with_name(target.name + ".tmp")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(data)
            tmp.replace(target)
        except OSError as e:
            raise StorageError(f"upload_failed:{path}") from e
        logger.debug("Uploaded %s (%d bytes, %s)", path, len(data), content_type)
        return self.url_for(path)

    def download(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return target.read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError(f"Blob not found: {path}") from e
        except OSError as e:
            raise StorageError(f"download_failed:{path}") from e

    def delete(self, path: str) -> None:
        target = self._resolve(path)
        try:
            target.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"delete_failed:{path}") from e
