# models/follow.py
from sqlalchemy import Column, BigInteger, ForeignKey, UniqueConstraint

from .base import Base, CreatedAtMixin


class Follow(CreatedAtMixin, Base):
    __tablename__ = "follows"

    id = Column(BigInteger, primary_key=True, index=True)
    follower_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    following_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    __table_args__ = (UniqueConstraint("follower_id", "following_id", name="uq_follow_pair"),)

    def __repr__(self):
        return f"<Follow {self.follower_id}→{self.following_id}>"
