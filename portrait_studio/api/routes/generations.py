from typing import Literal

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from portrait_studio.api.deps import (
    get_image_provider,
    get_runtime_config,
    get_storage,
    read_image_upload,
)
from portrait_studio.db.session import get_db
from portrait_studio.models.generation import Generation
from portrait_studio.schemas.generations import (
    GenerateOut,
    GenerationOut,
    HistoryOut,
    ShareOut,
    ToggleOut,
)
from portrait_studio.services.app_settings.settings_service import RuntimeConfig
from portrait_studio.services.auth.jwt import Claims, get_current_user
from portrait_studio.services.generations.service import GenerationService, image_url
from portrait_studio.services.image_generation import ImageGenerationProvider
from portrait_studio.services.interactions.service import InteractionService
from portrait_studio.services.prompts.resolver import StyleSelector
from portrait_studio.storage.base import BlobStore


router = APIRouter(prefix="/api", tags=["generations"])


def generation_out(generation: Generation, kinds: set[str]) -> GenerationOut:
    return GenerationOut(
        id=generation.id,
        prompt=generation.prompt,
        image_url=image_url(generation.result_path),
        summary=generation.summary,
        tags=list(generation.tags or []),
        created_at=generation.created_at,
        likes_count=generation.likes_count,
        bookmarks_count=generation.bookmarks_count,
        votes_count=generation.votes_count,
        is_public=generation.is_public,
        remixed_from=generation.remixed_from,
        is_liked="like" in kinds,
        is_bookmarked="bookmark" in kinds,
        is_voted="vote" in kinds,
    )


@router.post("/generate", response_model=GenerateOut)
def generate(
    image: UploadFile | None = File(default=None),
    prompt_id: str | None = Form(default=None, alias="promptId"),
    remix_from: str | None = Form(default=None, alias="remixFrom"),
    prompt: str | None = Form(default=None),
    user: Claims = Depends(get_current_user),
    db: Session = Depends(get_db),
    config: RuntimeConfig = Depends(get_runtime_config),
    blob_store: BlobStore = Depends(get_storage),
    provider: ImageGenerationProvider = Depends(get_image_provider),
) -> GenerateOut:
    upload = read_image_upload(image)
    service = GenerationService(db, blob_store, provider, config)
    result = service.generate(
        user.sub,
        upload.content,
        upload.extension,
        mime_type=upload.mime_type,
        selector=StyleSelector(prompt_id=prompt_id, remix_from=remix_from, custom_prompt=prompt),
    )
    return GenerateOut(
        gen_id=result.gen_id,
        remaining_credits=result.remaining_credits,
        image_url=result.image_url,
        summary=result.summary,
        tags=result.tags,
    )


@router.get("/generations", response_model=HistoryOut)
def history(
    user: Claims = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> HistoryOut:
    service = InteractionService(db)
    generations = service.history(user.sub)
    kinds = service.kinds_by_generation(user.sub, [g.id for g in generations])
    return HistoryOut(generations=[generation_out(g, kinds.get(g.id, set())) for g in generations])


@router.post("/generations/{generation_id}/share", response_model=ShareOut)
def toggle_share(
    generation_id: str,
    user: Claims = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ShareOut:
    return ShareOut(is_public=InteractionService(db).toggle_share(user.sub, generation_id))


@router.post("/generations/{generation_id}/{kind}", response_model=ToggleOut)
def toggle_interaction(
    generation_id: str,
    kind: Literal["like", "bookmark", "vote"],
    user: Claims = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ToggleOut:
    result = InteractionService(db).toggle(user.sub, generation_id, kind)
    return ToggleOut(active=result.active, count=result.count)
