# models/comment.py
from sqlalchemy import Column, BigInteger, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from .base import Base, CreatedAtMixin


class BattleComment(CreatedAtMixin, Base):
    __tablename__ = "battle_comments"

    id = Column(BigInteger, primary_key=True, index=True)
    battle_id = Column(
        BigInteger, ForeignKey("opinion_battles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    # 'agree' | 'disagree', не меняется после создания
    side = Column(String(16), nullable=False)
    content = Column(Text, nullable=False)

    battle = relationship("OpinionBattle", back_populates="comments")
    user = relationship("User", foreign_keys=[user_id])
    likes = relationship(
        "BattleCommentLike",
        back_populates="comment",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<BattleComment id={self.id} battle={self.battle_id} side={self.side}>"
