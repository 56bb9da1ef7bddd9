"""Create all tables. Model modules are imported here so Base.metadata knows them."""
from portrait_studio.db.base import Base
from portrait_studio.db.session import engine
from portrait_studio.models import (  # noqa: F401
    app_settings,
    event,
    generation,
    interaction,
    job,
    payment,
    preset,
    user,
)


def create_tables(bind=None) -> None:
    Base.metadata.create_all(bind=bind or engine)


def drop_tables(bind=None) -> None:
    Base.metadata.drop_all(bind=bind or engine)
