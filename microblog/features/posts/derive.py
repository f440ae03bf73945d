import logging
import threading

from microblog.domain.models import ImageAttachment, ImageVariant, Post
from microblog.features.posts.signals import PostCreatedSignal
from microblog.images.paths import blob_path_from_url, build_path
from microblog.images.resizer import ImageResizer
from microblog.images.sizes import (
    SIZES,
    VARIANT_CONTENT_TYPE,
    VARIANT_EXTENSION,
    VARIANT_FORMAT,
    VariantSize,
)
from microblog.infra.repo_posts import PostStore
from microblog.infra.storage import BlobStore

logger = logging.getLogger(__name__)


class DerivationCancelled(Exception):
    pass


class DerivationHandler:
    """Builds the catalog variants for every image of a freshly created post.

    A run either saves all variants it produced or nothing: any failure or a
    cancellation propagates before the single final save. Catalog sizes that
    an attachment already has are skipped, so a redelivered signal does not
    duplicate variants.
    """

    def __init__(
        self,
        *,
        posts: PostStore,
        blobs: BlobStore,
        resizer: ImageResizer,
        sizes: tuple[VariantSize, ...] = SIZES,
    ) -> None:
        self._posts = posts
        self._blobs = blobs
        self._resizer = resizer
        self._sizes = sizes

    def handle(self, signal: PostCreatedSignal, cancel: threading.Event | None = None) -> int:
        """Returns the number of variants added."""
        post = self._posts.get(signal.post_id)
        if post is None:
            logger.info("Post %s no longer exists; nothing to derive", signal.post_id)
            return 0
        if not post.images:
            logger.info("Post %s has no images; nothing to derive", post.id)
            return 0

        added = 0
        for attachment in post.images:
            added += self._derive_attachment(post, attachment, cancel)

        if added == 0:
            logger.info("Post %s already has every variant", post.id)
            return 0

        _check(cancel)
        post.touch()
        self._posts.save(post)
        logger.info("Derived %d variant(s) for post %s", added, post.id)
        return added

    def _derive_attachment(
        self, post: Post, attachment: ImageAttachment, cancel: threading.Event | None
    ) -> int:
        pending = [s for s in self._sizes if not attachment.has_variant(s.width, s.height)]
        if not pending:
            return 0

        _check(cancel)
        original = self._blobs.download(blob_path_from_url(attachment.original_url))

        for size in pending:
            _check(cancel)
            resized = self._resizer.resize(original, size.width, size.height)

            _check(cancel)
            path = build_path(post.id, attachment.id, size.label, VARIANT_EXTENSION)
            url = self._blobs.upload(resized, path, VARIANT_CONTENT_TYPE)
            attachment.add_variant(ImageVariant(url=url, width=size.width, height=size.height, format=VARIANT_FORMAT))
            logger.debug("Stored %s variant of image %s at %s", size.label, attachment.id, path)

        return len(pending)


def _check(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise DerivationCancelled("derivation_cancelled")
