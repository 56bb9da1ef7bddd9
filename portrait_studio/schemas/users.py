from datetime import datetime

from portrait_studio.schemas.base import CamelModel


class VerifyIn(CamelModel):
    token: str | None = None


class UserOut(CamelModel):
    id: str
    email: str | None = None
    display_name: str | None = None
    role: str
    credits: int
    subscription_status: str
    subscription_expires_at: datetime | None = None
    generation_count: int = 0
    total_spent: int = 0
    created_at: datetime | None = None


class VerifyOut(CamelModel):
    status: str = "ok"
    user: UserOut
