# models/like.py
from sqlalchemy import Column, BigInteger, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base, CreatedAtMixin


class BattleCommentLike(CreatedAtMixin, Base):
    __tablename__ = "battle_comment_likes"

    id = Column(BigInteger, primary_key=True, index=True)
    comment_id = Column(
        BigInteger, ForeignKey("battle_comments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    # Один лайк на пару (комментарий, пользователь)
    __table_args__ = (UniqueConstraint("comment_id", "user_id", name="uq_comment_like_user"),)

    comment = relationship("BattleComment", back_populates="likes")

    def __repr__(self):
        return f"<BattleCommentLike {self.user_id}→{self.comment_id}>"
