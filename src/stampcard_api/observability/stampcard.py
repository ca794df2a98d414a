from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from threading import Lock
from typing import Dict


@dataclass
class StampcardSnapshot:
    scans: Dict[str, int]
    rejections: Dict[str, int]
    redemptions: Dict[str, int]
    offers: Dict[str, int]

    def as_dict(self) -> Dict[str, object]:
        return {
            "scans": dict(self.scans),
            "rejections": dict(self.rejections),
            "redemptions": dict(self.redemptions),
            "offers": dict(self.offers),
        }


class StampcardObservabilityStore:
    """Collect scan and redemption telemetry for dashboards and alerting."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._scans: Dict[str, int] = defaultdict(int)
        self._rejections: Dict[str, int] = defaultdict(int)
        self._redemptions: Dict[str, int] = defaultdict(int)
        self._offers: Dict[str, int] = defaultdict(int)

    def record_scan(self, *, offer_id: str, stamps: int, completed: bool, new_cycle: bool) -> None:
        with self._lock:
            self._scans["accepted"] += 1
            self._scans["stamps_awarded"] += stamps
            self._scans[f"offer:{offer_id}"] += 1
            if completed:
                self._scans["rewards_completed"] += 1
            if new_cycle:
                self._scans["cycles_started"] += 1

    def record_rejection(self, code: str) -> None:
        with self._lock:
            self._rejections[code] += 1

    def record_redemption(self, reward_type: str) -> None:
        with self._lock:
            self._redemptions["total"] += 1
            self._redemptions[f"type:{reward_type}"] += 1

    def record_offer_event(self, event: str) -> None:
        with self._lock:
            self._offers[event] += 1

    def snapshot(self) -> StampcardSnapshot:
        with self._lock:
            return StampcardSnapshot(
                scans=dict(self._scans),
                rejections=dict(self._rejections),
                redemptions=dict(self._redemptions),
                offers=dict(self._offers),
            )

    def reset(self) -> None:
        with self._lock:
            self._scans.clear()
            self._rejections.clear()
            self._redemptions.clear()
            self._offers.clear()


_STORE = StampcardObservabilityStore()


def get_stampcard_store() -> StampcardObservabilityStore:
    return _STORE


__all__ = ["get_stampcard_store", "StampcardObservabilityStore", "StampcardSnapshot"]
