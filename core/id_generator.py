import random

# Двухзначные коды сущностей
TYPE_POSTFIX = {
    "users": 1,
    "follows": 2,
    "opinion_battles": 7,
    "battle_comments": 9,
    "battle_comment_likes": 10,
}


def generate_random_id(entity: str) -> int:
    """Возвращает 12-значный id: 10 случайных цифр + 2-значный постфикс."""
    if entity not in TYPE_POSTFIX:
        raise ValueError(f"Unknown entity for ID generation: {entity}")
    rand10 = random.randint(0, 9_999_999_999)
    postfix = TYPE_POSTFIX[entity]
    return rand10 * 100 + postfix
