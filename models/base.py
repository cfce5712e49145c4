from sqlalchemy import Column, DateTime, MetaData, event
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

from core.id_generator import generate_random_id

# Единые имена ограничений для PostgreSQL и SQLite
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Общий Base для всех моделей
Base = declarative_base(metadata=MetaData(naming_convention=NAMING_CONVENTION))


class CreatedAtMixin:
    """Время создания строки, по нему ранжируются аргументы и критики при равенстве."""

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


@event.listens_for(Base, "before_insert", propagate=True)
def assign_random_id(mapper, connection, target):
    if getattr(target, "id", None) is None:
        target.id = generate_random_id(target.__tablename__)


def register_models() -> None:
    """Импортирует все модели, чтобы они попали в Base.metadata."""
    from . import battle, comment, follow, like, user  # noqa: F401
