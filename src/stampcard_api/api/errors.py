"""Translate stampcard domain errors into HTTP responses."""

from __future__ import annotations

import math
from datetime import datetime, timezone

from fastapi import HTTPException, status

from stampcard_api.services.stampcard import CooldownActiveError, StampcardError

_STATUS_BY_CODE: dict[str, int] = {
    "unauthorized": status.HTTP_403_FORBIDDEN,
    "invalid_session": status.HTTP_401_UNAUTHORIZED,
    "user_not_found": status.HTTP_404_NOT_FOUND,
    "offer_not_found": status.HTTP_404_NOT_FOUND,
    "reward_not_found": status.HTTP_404_NOT_FOUND,
    "offer_inactive": status.HTTP_409_CONFLICT,
    "offer_active": status.HTTP_409_CONFLICT,
    "offer_in_use": status.HTTP_409_CONFLICT,
    "reward_already_completed": status.HTTP_409_CONFLICT,
    "reward_already_claimed": status.HTTP_409_CONFLICT,
    "concurrent_modification": status.HTTP_409_CONFLICT,
    "user_exists": status.HTTP_409_CONFLICT,
    "reward_not_completed": status.HTTP_422_UNPROCESSABLE_CONTENT,
    "offer_invalid": status.HTTP_422_UNPROCESSABLE_CONTENT,
    "invalid_scan_payload": status.HTTP_422_UNPROCESSABLE_CONTENT,
    "cooldown_active": status.HTTP_429_TOO_MANY_REQUESTS,
}


def http_error(exc: StampcardError) -> HTTPException:
    status_code = _STATUS_BY_CODE.get(exc.code, status.HTTP_400_BAD_REQUEST)
    headers: dict[str, str] | None = None
    if isinstance(exc, CooldownActiveError):
        seconds = (exc.retry_after - datetime.now(timezone.utc)).total_seconds()
        headers = {"Retry-After": str(max(math.ceil(seconds), 0))}
    return HTTPException(status_code=status_code, detail=exc.as_dict(), headers=headers)
