from pathlib import Path

import pytest

from microblog.domain.errors import NotFoundError, StorageError
from microblog.infra.storage import LocalBlobStore


def test_upload_returns_public_url_and_download_round_trips(tmp_path: Path) -> None:
    store = LocalBlobStore(root=tmp_path, base_url="http://cdn.test/")

    url = store.upload(b"hello", "posts/p1/i1-original.jpg", "image/jpeg")

    assert url == "http://cdn.test/images/posts/p1/i1-original.jpg"
    assert store.download("posts/p1/i1-original.jpg") == b"hello"
    assert (tmp_path / "images" / "posts" / "p1" / "i1-original.jpg").exists()


def test_upload_overwrites_existing_blob(tmp_path: Path) -> None:
    store = LocalBlobStore(root=tmp_path, base_url="http://cdn.test")

    url1 = store.upload(b"first", "posts/p1/a-thumbnail.webp", "image/webp")
    url2 = store.upload(b"second", "posts/p1/a-thumbnail.webp", "image/webp")

    assert url1 == url2
    assert store.download("posts/p1/a-thumbnail.webp") == b"second"


def test_download_missing_blob_raises_not_found(tmp_path: Path) -> None:
    store = LocalBlobStore(root=tmp_path, base_url="http://cdn.test")

    with pytest.raises(NotFoundError):
        store.download("posts/none/missing-original.jpg")


def test_delete_is_idempotent(tmp_path: Path) -> None:
    store = LocalBlobStore(root=tmp_path, base_url="http://cdn.test")
    store.upload(b"x", "posts/p1/a-original.png", "image/png")

    store.delete("posts/p1/a-original.png")
    store.delete("posts/p1/a-original.png")

    with pytest.raises(NotFoundError):
        store.download("posts/p1/a-original.png")


def test_leading_slash_stays_inside_root(tmp_path: Path) -> None:
    store = LocalBlobStore(root=tmp_path, base_url="http://cdn.test")

    store.upload(b"x", "/posts/p1/a-original.png", "image/png")

    assert store.download("posts/p1/a-original.png") == b"x"


@pytest.mark.parametrize("path", ["../escape.png", "posts/../../escape.png", ""])
def test_paths_outside_root_are_rejected(tmp_path: Path, path: str) -> None:
    store = LocalBlobStore(root=tmp_path, base_url="http://cdn.test")

    with pytest.raises(StorageError):
        store.upload(b"x", path, "image/png")
