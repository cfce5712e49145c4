from typing import Optional

from pydantic import BaseModel


class CriticRankRead(BaseModel):
    id: int
    handle: str
    name: Optional[str] = None
    avatar: Optional[str] = None
    critic_score: int
    rank: int
