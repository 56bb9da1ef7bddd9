"""
Likes, bookmarks and votes on generations, the public share flag, and the
listing views (history, public feed) that carry the caller's flags.
Counters on the Generation Record move with the caller's interaction rows.
"""
import logging
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portrait_studio.core.errors import InvalidRequest, ResourceNotFound
from portrait_studio.models.generation import Generation, GenerationStatus
from portrait_studio.models.interaction import Interaction

logger = logging.getLogger(__name__)

KIND_COUNTERS = {
    "like": "likes_count",
    "bookmark": "bookmarks_count",
    "vote": "votes_count",
}

HISTORY_LIMIT = 20
PUBLIC_FEED_LIMIT = 30


@dataclass(frozen=True)
class ToggleResult:
    active: bool
    count: int


class InteractionService:
    def __init__(self, db: Session):
        self.db = db

    def _get_generation(self, generation_id: str) -> Generation:
        generation = self.db.query(Generation).filter(Generation.id == generation_id).one_or_none()
        if not generation:
            raise ResourceNotFound("Generation not found")
        return generation

    def _find(self, user_id: str, generation_id: str, kind: str) -> Interaction | None:
        return (
            self.db.query(Interaction)
            .filter(
                Interaction.user_id == user_id,
                Interaction.generation_id == generation_id,
                Interaction.kind == kind,
            )
            .one_or_none()
        )

    def _bump(self, generation_id: str, kind: str, delta: int) -> None:
        column = getattr(Generation, KIND_COUNTERS[kind])
        stmt = update(Generation).where(Generation.id == generation_id)
        if delta < 0:
            stmt = stmt.where(column > 0)
        self.db.execute(stmt.values({KIND_COUNTERS[kind]: column + delta}).execution_options(synchronize_session=False))

    def toggle(self, user_id: str, generation_id: str, kind: str) -> ToggleResult:
        if kind not in KIND_COUNTERS:
            raise InvalidRequest(f"Unknown interaction: {kind}")
        self._get_generation(generation_id)

        existing = self._find(user_id, generation_id, kind)
        if existing:
            self.db.delete(existing)
            self._bump(generation_id, kind, -1)
            self.db.commit()
            active = False
        else:
            self.db.add(Interaction(user_id=user_id, generation_id=generation_id, kind=kind))
            try:
                self.db.flush()
            except IntegrityError:
                # Concurrent toggle already inserted the row.
                self.db.rollback()
                active = True
            else:
                self._bump(generation_id, kind, 1)
                self.db.commit()
                active = True

        count = self.db.execute(
            select(getattr(Generation, KIND_COUNTERS[kind])).where(Generation.id == generation_id)
        ).scalar_one()
        logger.info(
            "interaction_toggled",
            extra={"user_id": user_id, "generation_id": generation_id, "kind": kind, "active": active},
        )
        return ToggleResult(active=active, count=count)

    def kinds_by_generation(self, user_id: str, generation_ids: list[str]) -> dict[str, set[str]]:
        """{generation_id: {"like", "bookmark", ...}} for the caller's interactions."""
        if not generation_ids:
            return {}
        rows = (
            self.db.query(Interaction.generation_id, Interaction.kind)
            .filter(Interaction.user_id == user_id, Interaction.generation_id.in_(generation_ids))
            .all()
        )
        out: dict[str, set[str]] = {}
        for generation_id, kind in rows:
            out.setdefault(generation_id, set()).add(kind)
        return out

    def toggle_share(self, user_id: str, generation_id: str) -> bool:
        """Flip the public flag. Only the owner may share; others get not-found."""
        generation = self._get_generation(generation_id)
        if generation.user_id != user_id:
            raise ResourceNotFound("Generation not found")
        generation.is_public = not generation.is_public
        self.db.add(generation)
        self.db.commit()
        self.db.refresh(generation)
        return generation.is_public

    def get_public(self, generation_id: str) -> Generation:
        generation = self.db.query(Generation).filter(Generation.id == generation_id).one_or_none()
        if not generation or not generation.is_public:
            raise ResourceNotFound("Generation not found")
        return generation

    def public_feed(self, limit: int = PUBLIC_FEED_LIMIT) -> list[Generation]:
        return (
            self.db.query(Generation)
            .filter(Generation.is_public.is_(True))
            .order_by(Generation.created_at.desc())
            .limit(limit)
            .all()
        )

    def history(self, user_id: str, limit: int = HISTORY_LIMIT) -> list[Generation]:
        """Caller's most recent completed generations, newest first."""
        return (
            self.db.query(Generation)
            .filter(
                Generation.user_id == user_id,
                Generation.status == GenerationStatus.COMPLETED.value,
            )
            .order_by(Generation.created_at.desc())
            .limit(limit)
            .all()
        )
