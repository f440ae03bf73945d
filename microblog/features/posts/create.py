import logging
import uuid

from microblog.domain.models import GeoLocation, ImageAttachment, Post
from microblog.features.posts.signals import PostCreatedSignal, SignalPublisher
from microblog.features.posts.validation import ImageUpload, image_extension, validate_create_post
from microblog.images.paths import build_path
from microblog.images.sizes import ORIGINAL_LABEL
from microblog.infra.repo_posts import PostStore
from microblog.infra.storage import BlobStore

logger = logging.getLogger(__name__)


class CreatePostHandler:
    def __init__(self, *, posts: PostStore, blobs: BlobStore, publisher: SignalPublisher) -> None:
        self._posts = posts
        self._blobs = blobs
        self._publisher = publisher

    def handle(
        self,
        *,
        author_id: uuid.UUID | str | None,
        text: str | None,
        latitude: float | None,
        longitude: float | None,
        images: list[ImageUpload] | None = None,
    ) -> Post:
        """Store the originals, persist the post, then announce it.

        Nothing is published unless the post was saved. Originals uploaded
        before a failure are deleted again and the error propagates as-is.
        """

        images = images or []
        data = validate_create_post(
            author_id=author_id, text=text, latitude=latitude, longitude=longitude, images=images
        )

        post = Post(
            author_id=data.author_id,
            text=data.text,
            location=GeoLocation(latitude=data.latitude, longitude=data.longitude),
        )

        uploaded: list[str] = []
        try:
            for image in images:
                image_id = uuid.uuid4()
                path = build_path(post.id, image_id, ORIGINAL_LABEL, image_extension(image.filename).lower())
                url = self._blobs.upload(image.content.read(), path, image.content_type)
                uploaded.append(path)
                post.add_image(ImageAttachment(url, id=image_id))

            self._posts.save(post)
        except Exception:
            self._discard_uploads(uploaded)
            raise

        logger.info("Created post %s with %d image(s)", post.id, len(post.images))
        self._publisher.publish(PostCreatedSignal.for_post(post))
        return post

    def _discard_uploads(self, paths: list[str]) -> None:
        for path in paths:
            try:
                self._blobs.delete(path)
            except Exception:
                logger.exception("Failed to clean up orphaned upload %s", path)
