from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import get_db
from core.security import get_current_user, get_optional_user
from models.user import User
from schemas.battle import (
    BattleCreate,
    BattleDetail,
    BattleEndRequest,
    BattleRead,
    CommentCreate,
    CommentRead,
    LikeToggleResponse,
)
from services.battle_engine import BattleEngine
from services.comment_aggregator import RankedComment
from utils.battle_helpers import (
    to_battle_detail,
    to_battle_details,
    to_battle_read,
    to_comment_read,
)

router = APIRouter(prefix="/battles", tags=["battles"])


def get_battle_engine(db: AsyncSession = Depends(get_db)) -> BattleEngine:
    return BattleEngine(db)


@router.post(
    "/",
    response_model=BattleRead,
    status_code=status.HTTP_201_CREATED,
    summary="Создать баттл мнений",
)
async def create_battle(
    payload: BattleCreate,
    engine: BattleEngine = Depends(get_battle_engine),
    current_user: User = Depends(get_current_user),
) -> BattleRead:
    battle = await engine.create_battle(
        current_user.id,
        payload.topic,
        payload.description,
        payload.duration_hours,
        payload.is_public,
        payload.series,
    )
    return to_battle_read(battle)


@router.get(
    "/",
    response_model=List[BattleDetail],
    summary="Лента баттлов (global или following)",
)
async def list_battles(
    scope: Literal["global", "following"] = Query("global"),
    limit: int = Query(10, ge=1, le=settings.FEED_MAX_LIMIT),
    offset: int = Query(0, ge=0),
    engine: BattleEngine = Depends(get_battle_engine),
    viewer: Optional[User] = Depends(get_optional_user),
) -> List[BattleDetail]:
    views = await engine.list_battles(
        viewer.id if viewer else None, scope=scope, limit=limit, offset=offset
    )
    return to_battle_details(views)


@router.get(
    "/{battle_id}",
    response_model=BattleDetail,
    summary="Получить баттл (истёкший закрывается при чтении)",
)
async def get_battle(
    battle_id: int,
    engine: BattleEngine = Depends(get_battle_engine),
    viewer: Optional[User] = Depends(get_optional_user),
) -> BattleDetail:
    view = await engine.get_battle(battle_id, viewer.id if viewer else None)
    return to_battle_detail(view)


@router.post(
    "/{battle_id}/resolve",
    response_model=BattleRead,
    summary="Закрыть баттл, если срок вышел",
)
async def resolve_battle(
    battle_id: int,
    engine: BattleEngine = Depends(get_battle_engine),
) -> BattleRead:
    battle = await engine.resolve_if_expired(battle_id)
    return to_battle_read(battle)


@router.post(
    "/{battle_id}/end",
    response_model=BattleRead,
    summary="Завершить баттл вручную (только автор)",
)
async def end_battle(
    battle_id: int,
    payload: Optional[BattleEndRequest] = None,
    engine: BattleEngine = Depends(get_battle_engine),
    current_user: User = Depends(get_current_user),
) -> BattleRead:
    battle = await engine.end_battle(
        battle_id, current_user.id, payload.winner_comment_id if payload else None
    )
    return to_battle_read(battle)


@router.delete(
    "/{battle_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Удалить баттл вместе с аргументами и лайками",
)
async def delete_battle(
    battle_id: int,
    engine: BattleEngine = Depends(get_battle_engine),
    current_user: User = Depends(get_current_user),
):
    await engine.delete_battle(battle_id, current_user.id)
    return


@router.post(
    "/{battle_id}/comments",
    response_model=CommentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Добавить аргумент за или против",
)
async def add_comment(
    battle_id: int,
    payload: CommentCreate,
    engine: BattleEngine = Depends(get_battle_engine),
    current_user: User = Depends(get_current_user),
) -> CommentRead:
    comment = await engine.submit_comment(
        battle_id, current_user.id, payload.side, payload.content
    )
    return to_comment_read(
        RankedComment(comment=comment, likes_count=0),
        {current_user.id: current_user},
        set(),
    )


@router.delete(
    "/comments/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Удалить свой аргумент (пока баттл активен)",
)
async def delete_comment(
    comment_id: int,
    engine: BattleEngine = Depends(get_battle_engine),
    current_user: User = Depends(get_current_user),
):
    await engine.delete_comment(comment_id, current_user.id)
    return


@router.post(
    "/comments/{comment_id}/like",
    response_model=LikeToggleResponse,
    summary="Поставить или убрать лайк аргументу",
)
async def toggle_comment_like(
    comment_id: int,
    engine: BattleEngine = Depends(get_battle_engine),
    current_user: User = Depends(get_current_user),
) -> LikeToggleResponse:
    liked = await engine.toggle_comment_like(comment_id, current_user.id)
    likes_count = await engine.like_count(comment_id)
    return LikeToggleResponse(comment_id=comment_id, liked=liked, likes_count=likes_count)
