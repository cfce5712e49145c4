"""Типизированные ошибки движка баттлов.

Каждая ошибка несёт HTTP-статус и текст для пользователя; main.py
рендерит их тем же JSON, что и HTTPException: {"detail": ...}.
"""
from starlette import status


class BattleError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Ошибка баттла"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Unauthenticated(BattleError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Пользователь не определён. Войдите снова."


class NotFound(BattleError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class InvalidInput(BattleError):
    status_code = 422
    default_detail = "Некорректные данные"


class Forbidden(BattleError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Недостаточно прав"


class BattleEnded(BattleError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Этот баттл уже завершён."


class BattleExpired(BattleError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Время баттла истекло."


class Conflict(BattleError):
    """Проигранная гонка при условной записи. Нужно перечитать, а не повторять запись."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "Конфликт одновременной записи"


class StoreUnavailable(BattleError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Хранилище недоступно"
