from fastapi import APIRouter, File, Form, HTTPException, Query, Request, UploadFile

from microblog.features.posts.service import PostsService

router = APIRouter(prefix="/posts", tags=["posts"])


def _author(request: Request) -> str:
    # Session handling lives in front of this service; it forwards the user id.
    author = request.headers.get("X-User-Id")
    if not author:
        raise HTTPException(status_code=401, detail="missing_user")
    return author


@router.post("", status_code=201)
async def create_post(
    request: Request,
    text: str | None = Form(None),
    latitude: float | None = Form(None),
    longitude: float | None = Form(None),
    images: list[UploadFile] | None = File(None),
) -> dict[str, object]:
    author = _author(request)
    return await PostsService(cfg=request.app.state.cfg).create_post(
        author_id=author,
        text=text,
        latitude=latitude,
        longitude=longitude,
        files=images or [],
    )


@router.get("/{post_id}")
async def get_post(request: Request, post_id: str, width: int = Query(800, ge=1)) -> dict[str, object]:
    return await PostsService(cfg=request.app.state.cfg).get_post(
        post_id=post_id, width=width
    )
