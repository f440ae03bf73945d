import io
import sqlite3
import sys
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from PIL import Image

from microblog.domain.errors import StorageError
from microblog.features.posts.signals import PostCreatedSignal
from microblog.infra.db import DbConfig, connect, migrate
from microblog.infra.storage import LocalBlobStore

BASE_URL = "http://test.local"


def pytest_configure() -> None:
    # Ensure `import microblog...` works without installing the package.
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root))


def encode_image(width: int, height: int, fmt: str = "PNG", mode: str = "RGB") -> bytes:
    img = Image.new(mode, (width, height), color="red" if mode in ("RGB", "RGBA") else 128)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    return encode_image


@pytest.fixture
def conn(tmp_path: Path) -> Iterator[sqlite3.Connection]:
    c = connect(DbConfig(path=tmp_path / "app.sqlite3"))
    migrate(c)
    yield c
    c.close()


@pytest.fixture
def blobs(tmp_path: Path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path / "blobs", BASE_URL)


class RecordingPublisher:
    def __init__(self) -> None:
        self.signals: list[PostCreatedSignal] = []

    def publish(self, signal: PostCreatedSignal) -> None:
        self.signals.append(signal)


class CountingBlobStore:
    """Wraps a real store, counts calls and can fail the n-th upload."""

    def __init__(self, inner: LocalBlobStore, fail_on_upload: int | None = None) -> None:
        self._inner = inner
        self._fail_on_upload = fail_on_upload
        self.uploads: list[str] = []
        self.downloads: list[str] = []
        self.deletes: list[str] = []

    def upload(self, data: bytes, path: str, content_type: str) -> str:
        if self._fail_on_upload is not None and len(self.uploads) + 1 == self._fail_on_upload:
            self.uploads.append(path)
            raise StorageError(f"injected_upload_failure:{path}")
        self.uploads.append(path)
        return self._inner.upload(data, path, content_type)

    def download(self, path: str) -> bytes:
        self.downloads.append(path)
        return self._inner.download(path)

    def delete(self, path: str) -> None:
        self.deletes.append(path)
        self._inner.delete(path)


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()
