"""Public share view and feed. Prompts are hidden metadata and never exposed here."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portrait_studio.db.session import get_db
from portrait_studio.models.generation import Generation
from portrait_studio.schemas.generations import FeedOut, PublicGenerationOut
from portrait_studio.services.auth.jwt import Claims, get_optional_user
from portrait_studio.services.generations.service import image_url
from portrait_studio.services.interactions.service import InteractionService


router = APIRouter(prefix="/api/public", tags=["public"])


def public_out(generation: Generation, kinds: set[str] | None = None) -> PublicGenerationOut:
    kinds = kinds or set()
    return PublicGenerationOut(
        id=generation.id,
        image_url=image_url(generation.result_path),
        summary=generation.summary,
        tags=list(generation.tags or []),
        created_at=generation.created_at,
        likes_count=generation.likes_count,
        bookmarks_count=generation.bookmarks_count,
        votes_count=generation.votes_count,
        is_liked="like" in kinds,
        is_bookmarked="bookmark" in kinds,
    )


@router.get("/share/{generation_id}", response_model=PublicGenerationOut)
def share_view(generation_id: str, db: Session = Depends(get_db)) -> PublicGenerationOut:
    return public_out(InteractionService(db).get_public(generation_id))


@router.get("/feed", response_model=FeedOut)
def feed(
    viewer: Claims | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
) -> FeedOut:
    service = InteractionService(db)
    generations = service.public_feed()
    kinds = service.kinds_by_generation(viewer.sub, [g.id for g in generations]) if viewer else {}
    return FeedOut(generations=[public_out(g, kinds.get(g.id)) for g in generations])
