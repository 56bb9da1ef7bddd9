from typing import Literal

from portrait_studio.schemas.base import CamelModel


class CheckoutIn(CamelModel):
    type: Literal["credit_pack", "subscription"] = "credit_pack"
    original_path: str | None = None
    prompt_id: str | None = None
    remix_from: str | None = None


class CheckoutOut(CamelModel):
    url: str
    session_id: str


class UploadOut(CamelModel):
    path: str
    image_url: str
