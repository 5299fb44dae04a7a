from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from conftest import NOW, review, tiktok_video
from core.models import AlertType, Network
from workers.watchlist_monitor import diff_engine
from workers.watchlist_monitor.adapters import GoogleReviewsAdapter, InstagramAdapter, TikTokAdapter
from workers.watchlist_monitor.diff_engine import build_alert, is_trending, process_profile, select_new_items
from workers.watchlist_monitor.exceptions import CollaboratorFetchError
from workers.watchlist_monitor.models import ContentItem, ProfileRef, ProfileState, WatchlistEntryRef


def _tiktok(videos):
    analyzer = AsyncMock()
    analyzer.analyze = AsyncMock(return_value={"rawData": {"videos": videos}})
    return TikTokAdapter(analyzer)


def _reviews(reviews):
    analyzer = AsyncMock()
    analyzer.analyze = AsyncMock(return_value={"placeId": "place-1"})
    loader = AsyncMock(return_value={"reviews": reviews})
    return GoogleReviewsAdapter(analyzer, loader, settle_seconds=0)


def _item(item_id, ts, likes=0):
    return ContentItem(id=item_id, timestamp_ms=ts, metrics={"likes": likes})


class TestSelectNewItems:

    def test_anchor_present_uses_timestamps(self):
        items = [_item("D", 400), _item("C", 300), _item("B", 200), _item("A", 100), _item("Z", 50)]
        assert [i.id for i in select_new_items(items, "A")] == ["D", "C", "B"]

    def test_anchor_missing_is_conservative(self):
        items = [_item("D", 400), _item("C", 300), _item(None, 250)]
        assert [i.id for i in select_new_items(items, "A")] == ["D", "C"]

    def test_same_timestamp_as_anchor_is_not_new(self):
        items = [_item("B", 100), _item("A", 100)]
        assert select_new_items(items, "A") == []


class TestIsTrending:

    def test_above_twice_the_mean(self):
        items = [_item("n", 4, 100), _item("a", 3, 40), _item("b", 2, 30), _item("c", 1, 50)]
        assert is_trending(items, "likes", window=3, multiplier=2.0)

    def test_not_above_twice_the_mean(self):
        items = [_item("n", 4, 100), _item("a", 3, 60), _item("b", 2, 60), _item("c", 1, 60)]
        assert not is_trending(items, "likes", window=3, multiplier=2.0)

    def test_needs_full_window(self):
        items = [_item("n", 3, 1000), _item("a", 2, 1), _item("b", 1, 1)]
        assert not is_trending(items, "likes", window=3, multiplier=2.0)

    def test_uses_settings_defaults(self):
        items = [_item("n", 4, 100), _item("a", 3, 40), _item("b", 2, 40), _item("c", 1, 40)]
        assert is_trending(items, "likes")


class TestBuildAlert:

    ENTRY = WatchlistEntryRef(id=3, user_id="user-1", competitor_place_id="place-1", competitor_name="Max Hotel")

    def test_post_alert_content(self):
        adapter = _tiktok([])
        item = adapter.build_item(tiktok_video("v9", hours_ago=3, likes=1234), self.ENTRY)

        alert = build_alert(adapter, self.ENTRY, item, AlertType.NEW_POST, now=NOW)

        assert alert.user_id == "user-1"
        assert alert.watchlist_id == 3
        assert alert.type is AlertType.NEW_POST
        assert alert.title == "Max Hotel posted on TikTok"
        assert alert.message == "3 hrs ago | 1,234 likes"
        assert alert.meta["network"] == "tiktok"
        assert alert.meta["external_id"] == "v9"
        assert alert.meta["likes"] == 1234
        assert alert.meta["timeAgo"] == "3 hrs"
        assert alert.meta["url"].endswith("/video/v9")
        assert alert.meta["initialBaseline"] is False

    def test_review_alert_content(self):
        adapter = _reviews([])
        item = adapter.build_item(review("r1", hours_ago=24, stars=2, text="Noisy"), self.ENTRY)

        alert = build_alert(adapter, self.ENTRY, item, AlertType.NEGATIVE_REVIEW, initial_baseline=True, now=NOW)

        assert alert.title == "Max Hotel got a negative review on Google"
        assert alert.message == "1 day ago | 2★ rating"
        assert alert.meta["rating"] == 2
        assert alert.meta["review_text"] == "Noisy"
        assert alert.meta["initialBaseline"] is True

    def test_undated_item(self):
        adapter = _tiktok([])
        item = ContentItem(id=None, timestamp_ms=0, metrics={"likes": 5})

        alert = build_alert(adapter, self.ENTRY, item, AlertType.NEW_POST, now=NOW)

        assert alert.message == "recently | 5 likes"
        assert alert.meta["external_id"] == "tiktok-0"


class TestBaseline:

    @pytest.mark.asyncio
    async def test_establishes_watermark_and_one_alert(self, session, seed):
        entry = await seed.entry()
        profile = await seed.profile(entry, Network.TIKTOK)
        adapter = _tiktok([tiktok_video("v1", hours_ago=10), tiktok_video("v2", hours_ago=1)])

        outcome = await process_profile(session, adapter, entry, profile, now=NOW)

        assert outcome.state is ProfileState.BASELINED
        assert outcome.alerts_created == 1
        stored = await seed.reload_profile(profile.id)
        assert stored.last_seen_external_id == "v2"
        assert stored.last_checked_at is not None
        alerts = await seed.alerts()
        assert len(alerts) == 1
        assert alerts[0].type is AlertType.NEW_POST
        assert alerts[0].meta["initialBaseline"] is True
        assert alerts[0].meta["external_id"] == "v2"

    @pytest.mark.asyncio
    async def test_repeated_baseline_creates_one_alert(self, session, seed):
        entry = await seed.entry()
        profile = await seed.profile(entry, Network.TIKTOK)
        adapter = _tiktok([tiktok_video("v1", hours_ago=10), tiktok_video("v2", hours_ago=1)])

        await process_profile(session, adapter, entry, profile, initial_baseline=True, now=NOW)
        profile = await seed.reload_profile(profile.id)
        second = await process_profile(
            session, adapter, entry, ProfileRef.from_row(profile), initial_baseline=True, now=NOW,
        )

        assert second.state is ProfileState.BASELINED
        assert second.alerts_created == 0
        assert len(await seed.alerts()) == 1

    @pytest.mark.asyncio
    async def test_empty_fetch_only_touches_last_checked(self, session, seed):
        entry = await seed.entry()
        profile = await seed.profile(entry, Network.TIKTOK)

        outcome = await process_profile(session, _tiktok([]), entry, profile, now=NOW)

        assert outcome.alerts_created == 0
        stored = await seed.reload_profile(profile.id)
        assert stored.last_seen_external_id is None
        assert stored.last_checked_at is not None
        assert await seed.alerts() == []

    @pytest.mark.asyncio
    async def test_newest_without_id_leaves_watermark_unset(self, session, seed):
        entry = await seed.entry()
        profile = await seed.profile(entry, Network.TIKTOK)

        outcome = await process_profile(session, _tiktok([tiktok_video(None, hours_ago=1)]), entry, profile, now=NOW)

        assert outcome.state is ProfileState.BASELINED
        stored = await seed.reload_profile(profile.id)
        assert stored.last_seen_external_id is None
        assert stored.last_checked_at is not None
        alerts = await seed.alerts()
        assert alerts[0].meta["external_id"].startswith("tiktok-")


class TestSteadyState:

    @pytest.mark.asyncio
    async def test_multi_item_catch_up(self, session, seed):
        entry = await seed.entry()
        profile = await seed.profile(entry, Network.TIKTOK, last_seen="A")
        adapter = _tiktok([
            tiktok_video("D", hours_ago=1),
            tiktok_video("C", hours_ago=2),
            tiktok_video("B", hours_ago=3),
            tiktok_video("A", hours_ago=4),
            tiktok_video("Z", hours_ago=5),
        ])

        outcome = await process_profile(session, adapter, entry, profile, now=NOW)

        assert outcome.state is ProfileState.NEW_CONTENT
        assert outcome.alerts_created == 3
        alerts = await seed.alerts()
        assert [a.meta["external_id"] for a in alerts] == ["B", "C", "D"]
        assert all(a.type is AlertType.NEW_POST for a in alerts)
        assert all(a.meta["initialBaseline"] is False for a in alerts)
        assert (await seed.reload_profile(profile.id)).last_seen_external_id == "D"

    @pytest.mark.asyncio
    async def test_watermark_scrolled_out_alerts_everything_else(self, session, seed):
        entry = await seed.entry()
        profile = await seed.profile(entry, Network.TIKTOK, last_seen="gone")
        adapter = _tiktok([tiktok_video("Y", hours_ago=1), tiktok_video("X", hours_ago=2)])

        outcome = await process_profile(session, adapter, entry, profile, now=NOW)

        assert outcome.alerts_created == 2
        assert (await seed.reload_profile(profile.id)).last_seen_external_id == "Y"

    @pytest.mark.asyncio
    async def test_no_new_content(self, session, seed):
        entry = await seed.entry()
        profile = await seed.profile(entry, Network.TIKTOK, last_seen="v2")
        adapter = _tiktok([tiktok_video("v2", hours_ago=1), tiktok_video("v1", hours_ago=2)])

        outcome = await process_profile(session, adapter, entry, profile, now=NOW)

        assert outcome.state is ProfileState.UNCHANGED
        stored = await seed.reload_profile(profile.id)
        assert stored.last_seen_external_id == "v2"
        assert stored.last_checked_at is not None
        assert await seed.alerts() == []

    @pytest.mark.asyncio
    async def test_empty_fetch_keeps_watermark(self, session, seed):
        entry = await seed.entry()
        profile = await seed.profile(entry, Network.TIKTOK, last_seen="v2")

        outcome = await process_profile(session, _tiktok([]), entry, profile, now=NOW)

        assert outcome.state is ProfileState.UNCHANGED
        assert (await seed.reload_profile(profile.id)).last_seen_external_id == "v2"

    @pytest.mark.parametrize("stars, expected", [
        (3, [AlertType.NEW_REVIEW, AlertType.NEGATIVE_REVIEW]),
        (4, [AlertType.NEW_REVIEW]),
    ])
    @pytest.mark.asyncio
    async def test_negative_review_escalation(self, session, seed, stars, expected):
        entry = await seed.entry()
        profile = await seed.profile(entry, Network.GOOGLE, "place-1", last_seen="r1")
        adapter = _reviews([review("r2", hours_ago=1, stars=stars), review("r1", hours_ago=48)])

        outcome = await process_profile(session, adapter, entry, profile, now=NOW)

        alerts = await seed.alerts()
        assert [a.type for a in alerts] == expected
        assert outcome.alerts_created == len(expected)
        assert {a.meta["external_id"] for a in alerts} == {"r2"}

    @pytest.mark.asyncio
    async def test_trending_post(self, session, seed):
        entry = await seed.entry()
        profile = await seed.profile(entry, Network.TIKTOK, last_seen="a")
        adapter = _tiktok([
            tiktok_video("new", hours_ago=1, likes=100),
            tiktok_video("a", hours_ago=2, likes=40),
            tiktok_video("b", hours_ago=3, likes=40),
            tiktok_video("c", hours_ago=4, likes=40),
        ])

        await process_profile(session, adapter, entry, profile, now=NOW)

        alerts = await seed.alerts()
        assert [a.type for a in alerts] == [AlertType.NEW_POST, AlertType.TRENDING_POST]
        assert alerts[1].title == "Max Hotel has a trending post on TikTok"

    @pytest.mark.asyncio
    async def test_not_trending(self, session, seed):
        entry = await seed.entry()
        profile = await seed.profile(entry, Network.TIKTOK, last_seen="a")
        adapter = _tiktok([
            tiktok_video("new", hours_ago=1, likes=100),
            tiktok_video("a", hours_ago=2, likes=60),
            tiktok_video("b", hours_ago=3, likes=60),
            tiktok_video("c", hours_ago=4, likes=60),
        ])

        await process_profile(session, adapter, entry, profile, now=NOW)

        assert [a.type for a in await seed.alerts()] == [AlertType.NEW_POST]

    @pytest.mark.asyncio
    async def test_watermark_advances_without_alerts(self, session, seed):
        entry = await seed.entry()
        profile = await seed.profile(entry, Network.TIKTOK, last_seen="A")
        same_time = tiktok_video("B", hours_ago=2)
        anchor = tiktok_video("A", hours_ago=2)

        outcome = await process_profile(session, _tiktok([same_time, anchor]), entry, profile, now=NOW)

        assert outcome.alerts_created == 0
        assert (await seed.reload_profile(profile.id)).last_seen_external_id == "B"
        assert await seed.alerts() == []

    @pytest.mark.asyncio
    async def test_post_in_posts_and_reels_alerts_once(self, session, seed):
        entry = await seed.entry()
        profile = await seed.profile(entry, Network.INSTAGRAM, last_seen="p1")
        p2 = {"shortCode": "p2", "timestamp": "2026-10-19T10:00:00Z", "likesCount": 5}
        p1 = {"shortCode": "p1", "timestamp": "2026-10-18T10:00:00Z", "likesCount": 5}
        analyzer = AsyncMock()
        analyzer.analyze = AsyncMock(return_value={"profile": {"latestPosts": [p2, p1], "latestReels": [p2]}})

        outcome = await process_profile(session, InstagramAdapter(analyzer), entry, profile, now=NOW)

        alerts = await seed.alerts()
        assert outcome.alerts_created == 1
        assert [(a.type, a.meta["external_id"]) for a in alerts] == [(AlertType.NEW_POST, "p2")]

    @pytest.mark.asyncio
    async def test_malformed_timestamp_does_not_fail_profile(self, session, seed):
        entry = await seed.entry()
        profile = await seed.profile(entry, Network.TIKTOK, last_seen="v1")
        bad = {"id": "bad", "createTime": "Infinity"}
        adapter = _tiktok([tiktok_video("v2", hours_ago=1), bad, tiktok_video("v1", hours_ago=2)])

        outcome = await process_profile(session, adapter, entry, profile, now=NOW)

        assert outcome.state is ProfileState.NEW_CONTENT
        assert [a.meta["external_id"] for a in await seed.alerts()] == ["v2"]
        assert (await seed.reload_profile(profile.id)).last_seen_external_id == "v2"


class TestFailures:

    @pytest.mark.asyncio
    async def test_fetch_failure_touches_last_checked_only(self, session, seed):
        entry = await seed.entry()
        profile = await seed.profile(entry, Network.TIKTOK, last_seen="v1")
        analyzer = AsyncMock()
        analyzer.analyze = AsyncMock(side_effect=RuntimeError("actor timed out"))

        with pytest.raises(CollaboratorFetchError, match="Error fetching tiktok for Max Hotel: actor timed out"):
            await process_profile(session, TikTokAdapter(analyzer), entry, profile, now=NOW)

        stored = await seed.reload_profile(profile.id)
        assert stored.last_seen_external_id == "v1"
        assert stored.last_checked_at is not None
        assert await seed.alerts() == []

    @pytest.mark.asyncio
    async def test_concurrent_watermark_change_skips_profile(self, session, seed):
        entry = await seed.entry()
        profile = await seed.profile(entry, Network.TIKTOK, last_seen="v1")
        stored = await seed.reload_profile(profile.id)
        stored.last_seen_external_id = "v2"
        await session.commit()
        adapter = _tiktok([tiktok_video("v2", hours_ago=1), tiktok_video("v1", hours_ago=2)])

        # profile still carries the stale "v1" read
        outcome = await process_profile(session, adapter, entry, profile, now=NOW)

        assert outcome.state is ProfileState.CONFLICT
        assert outcome.alerts_created == 0
        assert (await seed.reload_profile(profile.id)).last_seen_external_id == "v2"
        assert await seed.alerts() == []

    @pytest.mark.asyncio
    async def test_persistence_failure_falls_back_to_last_checked(self, session, seed, monkeypatch):
        entry = await seed.entry()
        profile = await seed.profile(entry, Network.TIKTOK, last_seen="v1")
        monkeypatch.setattr(
            diff_engine,
            "advance_watermark",
            AsyncMock(side_effect=OperationalError("UPDATE watchlist_social_profiles", {}, Exception("disk I/O error"))),
        )
        adapter = _tiktok([tiktok_video("v2", hours_ago=1), tiktok_video("v1", hours_ago=2)])

        outcome = await process_profile(session, adapter, entry, profile, now=NOW)

        assert outcome.state is ProfileState.FAILED
        assert len(outcome.errors) == 1
        assert "Error saving tiktok for Max Hotel" in outcome.errors[0]
        stored = await seed.reload_profile(profile.id)
        assert stored.last_seen_external_id == "v1"
        assert stored.last_checked_at is not None
        assert await seed.alerts() == []

    @pytest.mark.asyncio
    async def test_fetch_failure_rolls_back_before_touching(self):
        # Simulates an aborted transaction: the snapshot query fails inside the run session
        calls = []
        session = AsyncMock()
        session.rollback = AsyncMock(side_effect=lambda: calls.append("rollback"))
        session.execute = AsyncMock(side_effect=lambda *args, **kwargs: calls.append("execute"))
        session.commit = AsyncMock(side_effect=lambda: calls.append("commit"))
        analyzer = AsyncMock()
        analyzer.analyze = AsyncMock(return_value={"placeId": "place-1"})
        loader = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("connection reset")))
        adapter = GoogleReviewsAdapter(analyzer, loader, settle_seconds=0)
        entry = WatchlistEntryRef(id=1, user_id="user-1", competitor_place_id="place-1", competitor_name="Max Hotel")
        profile = ProfileRef(id=5, watchlist_id=1, network="google", handle_or_url="place-1", last_seen_external_id="r1")

        with pytest.raises(CollaboratorFetchError):
            await process_profile(session, adapter, entry, profile, now=NOW)

        assert calls == ["rollback", "execute", "commit"]
