"""QR scan payload parsing.

Two shapes are accepted: the JSON document rendered by the customer's QR
modal, and the legacy ``LOYALTY:{email}:{uid}`` string printed on early cards.
"""

from __future__ import annotations

import json
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from stampcard_api.core.settings import settings

from .errors import InvalidScanPayloadError

LEGACY_PREFIX = "LOYALTY"
REDEEM_ACTION = "redeem_reward"


class ScanPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_id: str = Field(alias="userId", min_length=1)
    user_email: str | None = Field(default=None, alias="userEmail")
    user_name: str | None = Field(default=None, alias="userName")
    offer_id: str | None = Field(default=None, alias="offerId")
    offer_name: str | None = Field(default=None, alias="offerName")
    action: Literal["redeem_reward"] | None = None
    reward_id: str | None = Field(default=None, alias="rewardId")
    legacy: bool = False

    @model_validator(mode="after")
    def _require_reward_for_redeem(self) -> "ScanPayload":
        if self.action == REDEEM_ACTION and not self.reward_id:
            raise ValueError("rewardId is required for redeem_reward payloads")
        return self

    @property
    def is_redemption(self) -> bool:
        return self.action == REDEEM_ACTION


def _parse_legacy(raw: str) -> ScanPayload:
    parts = raw.split(":")
    if len(parts) != 3 or not parts[1] or not parts[2]:
        raise InvalidScanPayloadError("Legacy QR code must look like LOYALTY:{email}:{uid}")
    _, email, uid = parts
    return ScanPayload(
        user_id=uid,
        user_email=email,
        offer_id=settings.default_offer_id,
        legacy=True,
    )


def parse_scan_payload(raw: str) -> ScanPayload:
    """Parse a scanned QR string into a :class:`ScanPayload`."""

    text = (raw or "").strip()
    if not text:
        raise InvalidScanPayloadError("Scan payload is empty")

    if text.startswith(f"{LEGACY_PREFIX}:"):
        return _parse_legacy(text)

    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidScanPayloadError("Scan payload is not a recognised QR code") from exc
    if not isinstance(document, dict):
        raise InvalidScanPayloadError("Scan payload must be a JSON object")

    try:
        return ScanPayload.model_validate(document)
    except ValidationError as exc:
        raise InvalidScanPayloadError(
            "Scan payload is missing required fields",
            errors=[error["msg"] for error in exc.errors()],
        ) from exc


__all__ = ["ScanPayload", "parse_scan_payload", "REDEEM_ACTION"]
