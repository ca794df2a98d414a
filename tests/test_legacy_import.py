from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from stampcard_api.models import User
from stampcard_api.services.stampcard import LegacyUserImporter, RewardService, ScanEngine
from stampcard_api.services.stampcard.legacy import parse_legacy_timestamp

from conftest import build_offer, build_user


LEGACY_DOCUMENT = {
    "id": "uid-legacy",
    "email": "Legacy@Example.com",
    "name": "Old Timer",
    "role": "customer",
    "purchases": 7,
    "lastScanAt": {"seconds": 1704189600, "nanoseconds": 0},
    "createdAt": "2023-12-01T08:00:00Z",
    "completedRewards": [
        {
            "rewardId": "reward_old",
            "claimedAt": {"seconds": 1703000000, "nanoseconds": 500000000},
            "scanHistory": [{"scannedBy": "admin@example.com", "timestamp": "2023-12-02T10:00:00Z"}] * 5,
        }
    ],
    "currentReward": {
        "rewardId": "reward_current",
        "claimedAt": None,
        "scanHistory": [
            {"scannedBy": "admin@example.com", "timestamp": {"seconds": 1704189600, "nanoseconds": 0}},
        ],
    },
}


def test_parse_legacy_timestamp_shapes() -> None:
    expected = datetime(2024, 1, 2, 10, 0, tzinfo=timezone.utc)

    assert parse_legacy_timestamp({"seconds": 1704189600, "nanoseconds": 0}) == expected
    assert parse_legacy_timestamp({"_seconds": 1704189600}) == expected
    assert parse_legacy_timestamp("2024-01-02T10:00:00Z") == expected
    assert parse_legacy_timestamp(1704189600000) == expected
    assert parse_legacy_timestamp(None) is None
    assert parse_legacy_timestamp("yesterday") is None


@pytest.mark.asyncio
async def test_import_ties_snapshotless_rewards_to_default_offer(session_factory) -> None:
    async with session_factory() as session:
        report = await LegacyUserImporter(session).import_documents([LEGACY_DOCUMENT])
        await session.commit()

        assert report.imported == ["uid-legacy"]
        assert report.rewards == 2

    async with session_factory() as session:
        user = await session.get(User, "uid-legacy")
        assert user.email == "legacy@example.com"
        assert user.purchases == 7
        assert user.current_offer_id == "default_offer"
        assert user.current_offer_progress == 1

        rewards = await RewardService(session).list_rewards("uid-legacy")
        by_id = {reward.reward_id: reward for reward in rewards}
        old = by_id["reward_old"]
        current = by_id["reward_current"]

        assert old.offer_id == "default_offer"
        assert old.offer_snapshot["offer_name"] == "Welcome Offer"
        assert old.status.value == "claimed"
        assert old.total_stamps_earned == 5
        assert current.status.value == "in_progress"
        assert current.scan_history[0].stamps_earned == 1


@pytest.mark.asyncio
async def test_import_keeps_existing_snapshots_and_skips_known_users(session_factory) -> None:
    document = {
        "id": "uid-modern",
        "email": "modern@example.com",
        "currentOfferId": "offer_coffee",
        "completedRewards": [
            {
                "rewardId": "reward_modern",
                "claimedAt": None,
                "rewardType": "free_item",
                "rewardValue": "Coffee",
                "rewardDescription": "Free coffee",
                "offerSnapshot": {
                    "offerId": "offer_coffee",
                    "offerName": "Coffee Club",
                    "description": "",
                    "stampRequirement": 3,
                    "rewardType": "free_item",
                    "rewardValue": "Coffee",
                    "rewardDescription": "Free coffee",
                },
                "createdAt": {"seconds": 1704189600, "nanoseconds": 0},
                "scanHistory": [
                    {
                        "scannedBy": "Ada (admin@example.com)",
                        "scannedByEmail": "admin@example.com",
                        "scannedByName": "Ada",
                        "stampsEarned": 2,
                        "timestamp": {"seconds": 1704189600, "nanoseconds": 0},
                        "scanId": "scan_1",
                    }
                ],
            }
        ],
    }
    async with session_factory() as session:
        session.add_all([build_offer("offer_coffee"), build_user("existing@example.com", user_id="uid-existing")])
        await session.commit()

        report = await LegacyUserImporter(session).import_documents(
            [document, {"id": "uid-existing", "email": "existing@example.com"}]
        )
        await session.commit()

        assert report.imported == ["uid-modern"]
        assert report.skipped == ["uid-existing"]

        rewards = await RewardService(session).list_rewards("uid-modern")
        assert rewards[0].offer_id == "offer_coffee"
        assert rewards[0].stamp_requirement == 3
        assert rewards[0].total_stamps_earned == 2
        assert rewards[0].scan_history[0].scan_id == "scan_1"


@pytest.mark.asyncio
async def test_claimed_legacy_reward_keeps_its_purchase_limit_and_stays_closed(session_factory) -> None:
    document = {
        "id": "uid-short",
        "email": "short@example.com",
        "purchaseLimit": 3,
        "purchases": 5,
        "lastScanAt": "2023-12-19T15:00:00Z",
        "completedRewards": [
            {
                "rewardId": "reward_old",
                "claimedAt": {"seconds": 1703000000, "nanoseconds": 0},
                "scanHistory": [{"scannedBy": "admin@example.com", "timestamp": "2023-12-02T10:00:00Z"}] * 3,
            },
            {
                "rewardId": "reward_older",
                "claimedAt": "2023-11-20T10:00:00Z",
                "settingsSnapshot": {"purchaseLimit": 2, "descriptionMessage": ""},
                "scanHistory": [{"scannedBy": "admin@example.com", "timestamp": "2023-11-10T10:00:00Z"}] * 2,
            },
        ],
    }
    async with session_factory() as session:
        admin = build_user("admin@example.com", role="admin")
        session.add(admin)
        await session.flush()
        await LegacyUserImporter(session).import_documents([document])
        await session.commit()

        rewards = {reward.reward_id: reward for reward in await RewardService(session).list_rewards("uid-short")}
        assert rewards["reward_old"].stamp_requirement == 3
        assert rewards["reward_older"].stamp_requirement == 2
        for reward in rewards.values():
            assert reward.status.value == "claimed"
            assert reward.is_in_progress is False

        outcome = await ScanEngine(session, tz=ZoneInfo("UTC")).record_scan(
            admin, "uid-short", "default_offer", now=datetime(2024, 1, 15, 10, tzinfo=timezone.utc)
        )
        await session.commit()

        assert outcome.new_reward is True
        assert outcome.reward.reward_id not in {"reward_old", "reward_older"}
        assert outcome.progress == 1
        assert rewards["reward_old"].total_stamps_earned == 3


@pytest.mark.asyncio
async def test_malformed_documents_are_skipped_without_aborting_the_batch(session_factory) -> None:
    documents = [
        {"id": "uid-no-email"},
        {"id": "uid-bad-role", "email": "bad-role@example.com", "role": "wizard"},
        {"id": "uid-fine", "email": "fine@example.com"},
    ]
    async with session_factory() as session:
        report = await LegacyUserImporter(session).import_documents(documents)
        await session.commit()

        assert report.imported == ["uid-fine"]
        assert report.skipped == ["uid-no-email", "uid-bad-role"]
        assert await session.get(User, "uid-bad-role") is None
