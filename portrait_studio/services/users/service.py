import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portrait_studio.models.user import User
from portrait_studio.services.auth.jwt import Claims
from portrait_studio.utils.time import utcnow

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> User | None:
        return self.db.query(User).filter(User.id == user_id).one_or_none()

    def get_or_create(self, claims: Claims, free_credits: int = 5) -> tuple[User, bool]:
        """User Account for verified claims; a new account starts with free_credits. Returns (user, created)."""
        user = self.get(claims.sub)
        if user:
            return user, False
        now = utcnow()
        user = User(
            id=claims.sub,
            email=claims.email,
            display_name=claims.name or "Anonymous",
            credits=free_credits,
            last_credit_reset_at=now,
            created_at=now,
            updated_at=now,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # Concurrent first login created the row.
            self.db.rollback()
            return self.get(claims.sub), False
        self.db.refresh(user)
        logger.info("user_created", extra={"user_id": user.id})
        return user, True

    def increment_generation_count(self, user_id: str) -> None:
        self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(generation_count=User.generation_count + 1)
        )
        self.db.commit()
