from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from core.config import settings


class SeriesRef(BaseModel):
    """Серия из TMDB, к которой привязан баттл."""

    tmdb_id: int = Field(..., description="ID серии в TMDB")
    title: str = Field(..., min_length=1, max_length=255, description="Название серии")
    poster_path: Optional[str] = Field(None, description="Путь постера в TMDB")

    @property
    def image_url(self) -> Optional[str]:
        if not self.poster_path:
            return None
        if self.poster_path.startswith("http"):
            return self.poster_path
        return f"{settings.SERIES_IMAGE_BASE_URL}{self.poster_path}"


class BattleCreate(BaseModel):
    topic: str = Field(..., description="Тезис баттла")
    description: str = Field(..., description="Описание")
    duration_hours: float = Field(..., description="Длительность в часах (дробные допустимы)")
    is_public: bool = Field(True, description="Виден всем или только подписчикам")
    series: Optional[SeriesRef] = Field(None, description="Связанная серия, обязательна")


class BattleEndRequest(BaseModel):
    winner_comment_id: Optional[int] = Field(None, description="Победивший аргумент, если выбран вручную")


class CommentCreate(BaseModel):
    side: Literal["agree", "disagree"]
    content: str = Field(..., description="Текст аргумента")


class UserBrief(BaseModel):
    id: int
    handle: str
    name: Optional[str] = None
    avatar: Optional[str] = None

    class Config:
        from_attributes = True


class CommentRead(BaseModel):
    id: int
    battle_id: int
    user_id: int
    side: Literal["agree", "disagree"]
    content: str
    likes_count: int
    created_at: datetime
    user: Optional[UserBrief] = None
    user_has_liked: bool = False


class BattleRead(BaseModel):
    id: int
    creator_id: int
    topic: str
    description: str
    tmdb_id: int
    series_title: str
    series_image: Optional[str] = None
    duration_hours: float
    is_public: bool
    status: Literal["active", "ended"]
    winner_side: Optional[Literal["agree", "disagree"]] = None
    winner_comment_id: Optional[int] = None
    ends_at: datetime
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BattleDetail(BattleRead):
    creator: Optional[UserBrief] = None
    agree_comments: List[CommentRead] = []
    disagree_comments: List[CommentRead] = []
    best_agree_comment: Optional[CommentRead] = None
    best_disagree_comment: Optional[CommentRead] = None
    winner_comment: Optional[CommentRead] = None


class LikeToggleResponse(BaseModel):
    comment_id: int
    liked: bool
    likes_count: int
