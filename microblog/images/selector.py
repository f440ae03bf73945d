from microblog.domain.models import ImageAttachment


def best_match(attachment: ImageAttachment, requested_width: int) -> str:
    """Url of the variant whose width is closest to ``requested_width``.

    Ties go to the earliest stored variant. Falls back to the original url
    while no variants exist.
    """

    variants = attachment.variants
    if not variants:
        return attachment.original_url
    best = min(variants, key=lambda v: abs(v.width - requested_width))
    return best.url
