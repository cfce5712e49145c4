import enum

from sqlalchemy import Column, BigInteger, Boolean, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from .base import Base, CreatedAtMixin


class BattleStatus(str, enum.Enum):
    ACTIVE = "active"
    ENDED = "ended"


class BattleSide(str, enum.Enum):
    AGREE = "agree"
    DISAGREE = "disagree"


class OpinionBattle(CreatedAtMixin, Base):
    __tablename__ = "opinion_battles"

    id = Column(BigInteger, primary_key=True, index=True)
    creator_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    topic = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)

    # Привязанная серия (TMDB)
    tmdb_id = Column(Integer, nullable=False)
    series_title = Column(String(255), nullable=False)
    series_image = Column(String(512), nullable=True)

    duration_hours = Column(Float, nullable=False)
    is_public = Column(Boolean, nullable=False, default=True)
    ends_at = Column(DateTime(timezone=True), nullable=False, index=True)

    status = Column(String(16), nullable=False, default=BattleStatus.ACTIVE.value, index=True)
    # NULL при ничьей и пока баттл активен
    winner_side = Column(String(16), nullable=True)
    winner_comment_id = Column(BigInteger, nullable=True)

    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    creator = relationship("User", foreign_keys=[creator_id])
    comments = relationship(
        "BattleComment",
        back_populates="battle",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_active(self) -> bool:
        return self.status == BattleStatus.ACTIVE.value

    def __repr__(self) -> str:
        return f"<OpinionBattle id={self.id} status={self.status} winner={self.winner_side}>"
