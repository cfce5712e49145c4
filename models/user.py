# models/user.py
from sqlalchemy import Column, BigInteger, Integer, String

from .base import Base, CreatedAtMixin


class User(CreatedAtMixin, Base):
    __tablename__ = "users"

    id = Column(BigInteger, primary_key=True, index=True)
    handle = Column(String(64), unique=True, nullable=False)
    name = Column(String(100), nullable=True)
    avatar = Column(String(512), nullable=True)

    # Очки рейтинга критиков, начисляются за победившие аргументы
    critic_score = Column(Integer, nullable=False, default=0, server_default="0")

    def __repr__(self):
        return f"<User id={self.id} handle={self.handle}>"
