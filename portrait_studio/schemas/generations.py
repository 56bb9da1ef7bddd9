from datetime import datetime

from portrait_studio.schemas.base import CamelModel


class GenerateOut(CamelModel):
    status: str = "success"
    gen_id: str
    remaining_credits: int | str
    image_url: str
    summary: str
    tags: list[str]


class GenerationOut(CamelModel):
    """Caller's own generation; includes the prompt."""
    id: str
    prompt: str
    image_url: str
    summary: str
    tags: list[str]
    created_at: datetime | None = None
    likes_count: int = 0
    bookmarks_count: int = 0
    votes_count: int = 0
    is_public: bool = False
    remixed_from: str | None = None
    is_liked: bool = False
    is_bookmarked: bool = False
    is_voted: bool = False


class HistoryOut(CamelModel):
    status: str = "success"
    generations: list[GenerationOut]


class PublicGenerationOut(CamelModel):
    """Public view: the prompt is hidden metadata and never included."""
    id: str
    image_url: str
    summary: str
    tags: list[str]
    created_at: datetime | None = None
    likes_count: int = 0
    bookmarks_count: int = 0
    votes_count: int = 0
    is_liked: bool = False
    is_bookmarked: bool = False


class FeedOut(CamelModel):
    status: str = "success"
    generations: list[PublicGenerationOut]


class ToggleOut(CamelModel):
    active: bool
    count: int


class ShareOut(CamelModel):
    is_public: bool
