from typing import List

from fastapi import APIRouter, Depends, Query

from routers.battle import get_battle_engine
from schemas.ranking import CriticRankRead
from services.battle_engine import BattleEngine
from utils.battle_helpers import to_critic_rank_read

router = APIRouter(prefix="/ranking", tags=["ranking"])


@router.get(
    "/critics",
    response_model=List[CriticRankRead],
    summary="Рейтинг критиков по очкам за победившие аргументы",
)
async def critic_ranking(
    limit: int = Query(50, ge=1, le=100),
    engine: BattleEngine = Depends(get_battle_engine),
) -> List[CriticRankRead]:
    ranking = await engine.critic_ranking(limit)
    return [to_critic_rank_read(entry) for entry in ranking]
