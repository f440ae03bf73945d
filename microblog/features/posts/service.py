import uuid

from fastapi import HTTPException, UploadFile
from starlette.concurrency import run_in_threadpool

from microblog.config import AppConfig
from microblog.domain.errors import PersistenceError, StorageError, ValidationError
from microblog.domain.models import Post
from microblog.features.posts.create import CreatePostHandler
from microblog.features.posts.signals import JobQueuePublisher
from microblog.features.posts.validation import ImageUpload
from microblog.images.selector import best_match
from microblog.infra.db import DbConfig, session
from microblog.infra.repo_posts import PostRepo
from microblog.infra.storage import LocalBlobStore


def _post_to_dict(post: Post, width: int) -> dict[str, object]:
    return {
        "id": str(post.id),
        "author_id": str(post.author_id),
        "text": post.text,
        "latitude": post.location.latitude,
        "longitude": post.location.longitude,
        "created_at": post.created_at,
        "updated_at": post.updated_at,
        "images": [
            {
                "id": str(a.id),
                "url": best_match(a, width),
                "original_url": a.original_url,
                "variants": [
                    {"url": v.url, "width": v.width, "height": v.height, "format": v.format}
                    for v in a.variants
                ],
            }
            for a in post.images
        ],
    }


class PostsService:
    def __init__(self, *, cfg: AppConfig) -> None:
        self._cfg = cfg
        self._db = DbConfig(path=cfg.db_path)

    def _create(self, **kwargs) -> Post:
        with session(self._db) as conn:
            handler = CreatePostHandler(
                posts=PostRepo(conn),
                blobs=LocalBlobStore(self._cfg.blobs_dir, self._cfg.public_base_url),
                publisher=JobQueuePublisher(conn),
            )
            return handler.handle(**kwargs)

    def _load(self, post_id: uuid.UUID) -> Post | None:
        with session(self._db) as conn:
            return PostRepo(conn).get(post_id)

    async def create_post(
        self,
        *,
        author_id: str,
        text: str | None,
        latitude: float | None,
        longitude: float | None,
        files: list[UploadFile],
    ) -> dict[str, object]:
        uploads = [
            ImageUpload(filename=f.filename or "", content_type=f.content_type or "", content=f.file)
            for f in files
        ]
        try:
            post = await run_in_threadpool(
                self._create,
                author_id=author_id,
                text=text,
                latitude=latitude,
                longitude=longitude,
                images=uploads,
            )
        except ValidationError as e:
            raise HTTPException(
                status_code=422,
                detail={"error": "validation_failed", "issues": [i.__dict__ for i in e.issues]},
            )
        except StorageError:
            raise HTTPException(status_code=502, detail="image_storage_failed")
        except PersistenceError:
            raise HTTPException(status_code=500, detail="post_not_saved")

        return {"post_id": str(post.id), "image_count": len(post.images)}

    async def get_post(self, *, post_id: str, width: int) -> dict[str, object]:
        try:
            pid = uuid.UUID(post_id)
        except ValueError:
            raise HTTPException(status_code=404, detail="post_not_found")
        try:
            post = await run_in_threadpool(self._load, pid)
        except PersistenceError:
            raise HTTPException(status_code=500, detail="post_load_failed")
        if post is None:
            raise HTTPException(status_code=404, detail="post_not_found")
        return _post_to_dict(post, width)
