MAX_POST_LENGTH = 140
MAX_IMAGE_SIZE_MB = 2
MAX_IMAGES_PER_POST = 4

ALLOWED_IMAGE_FORMATS = ("jpg", "jpeg", "png", "webp")
ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
