import pytest

from core.models import Alert, AlertType, Network
from workers.watchlist_monitor.dedup import baseline_alert_exists


async def _add_alert(session, entry, *, network="tiktok", baseline=True, alert_type=AlertType.NEW_POST):
    session.add(Alert(
        user_id=entry.user_id,
        watchlist_id=entry.id,
        type=alert_type,
        title="t",
        message="m",
        meta={"network": network, "initialBaseline": baseline},
    ))
    await session.commit()


class TestBaselineAlertExists:

    @pytest.mark.asyncio
    async def test_no_alerts(self, session, seed):
        entry = await seed.entry()
        assert not await baseline_alert_exists(session, "user-1", entry.id, Network.TIKTOK, AlertType.NEW_POST)

    @pytest.mark.asyncio
    async def test_matches_network_in_metadata(self, session, seed):
        entry = await seed.entry()
        await _add_alert(session, entry, network="tiktok")

        assert await baseline_alert_exists(session, "user-1", entry.id, Network.TIKTOK, AlertType.NEW_POST)
        assert not await baseline_alert_exists(session, "user-1", entry.id, Network.INSTAGRAM, AlertType.NEW_POST)

    @pytest.mark.asyncio
    async def test_steady_state_alerts_do_not_count(self, session, seed):
        entry = await seed.entry()
        await _add_alert(session, entry, baseline=False)

        assert not await baseline_alert_exists(session, "user-1", entry.id, Network.TIKTOK, AlertType.NEW_POST)

    @pytest.mark.asyncio
    async def test_scoped_to_watchlist_and_type(self, session, seed):
        first = await seed.entry("Max Hotel")
        second = await seed.entry("Min Hotel", place_id="place-2")
        await _add_alert(session, first)

        assert not await baseline_alert_exists(session, "user-1", second.id, Network.TIKTOK, AlertType.NEW_POST)
        assert not await baseline_alert_exists(session, "user-1", first.id, Network.TIKTOK, AlertType.TRENDING_POST)
