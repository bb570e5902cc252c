"""End-to-end scenarios: the client protocol layer driving the real API."""
import asyncio

import httpx
import pytest

from pushit.client import HoldOutcome, HoldSessionManager, HttpBackend, StateStore, VoteHoldController
from pushit.core.exceptions import AlreadyVotedError
from pushit.db.models import UserVote
from pushit.main import app
from pushit.services import votes as vote_service
from tests.integration.test_api.test_polls import create_poll


def _backend(headers=None):
    token = headers["Authorization"].split(" ", 1)[1] if headers else None
    http_client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")
    return HttpBackend("http://test", token=token, http_client=http_client), http_client


async def _controller(backend, poll_id, clock):
    poll = await backend.get_poll(poll_id)
    # The tests drive the countdown through tick()/release() and the fake clock
    return VoteHoldController.from_poll(backend, poll, clock=clock, duration=3.0, tick_interval=60)


def _tally(client, poll_id):
    return client.get(f"/api/v1/polls/{poll_id}/tallies").json()


@pytest.mark.integration
class TestScenarios:

    @pytest.mark.asyncio
    async def test_global_hold_seen_by_observer(self, client, clock, alice):
        """A holds the button; an observer sees the count go up, then down."""
        backend, http_client = _backend(alice)
        observer, observer_client = _backend()
        manager = HoldSessionManager(backend, StateStore(), clock=clock, heartbeat_interval=60)

        assert await observer.get_active_count() == 0

        handle = await manager.start_session("Portugal")
        clock.advance(3.0)
        assert await observer.get_active_count() == 1

        await manager.end_session(handle)
        assert await observer.get_active_count() == 0

        await http_client.aclose()
        await observer_client.aclose()

    @pytest.mark.asyncio
    async def test_abandoned_hold_expires(self, client, clock, alice, admin_token):
        """A holder that vanishes stops counting after the liveness timeout."""
        backend, http_client = _backend(alice)
        manager = HoldSessionManager(backend, StateStore(), clock=clock, heartbeat_interval=60)
        handle = await manager.start_session()
        # Simulate a crashed client: heartbeats stop, nobody ends the hold
        await manager._stop_heartbeat(handle)

        clock.advance(10 + 5)
        assert client.get("/api/v1/holds/active-count").json()["active_count"] == 0

        client.cookies.set("admin_token", admin_token)
        assert client.post("/api/v1/admin/holds/sweep").json() == {"reaped": 1}
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_early_release_records_nothing(self, client, clock, alice):
        poll_id = create_poll(client, alice)
        backend, http_client = _backend(alice)
        controller = await _controller(backend, poll_id, clock)
        option_a = sorted(controller.option_ids)[0]

        await controller.press(option_a)
        clock.advance(1.5)
        assert await controller.release() == HoldOutcome.CANCELLED
        await controller.close()

        tally = _tally(client, poll_id)
        assert tally["total_votes"] == 0
        assert [o["percentage"] for o in tally["options"]] == [0, 0, 0]
        assert client.get("/api/v1/stats").json()["total_votes"] == 0
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_full_hold_records_vote(self, client, clock, alice, bob):
        poll_id = create_poll(client, alice)
        option_b = client.get(f"/api/v1/polls/{poll_id}").json()["options"][1]["option_id"]
        client.post(f"/api/v1/polls/{poll_id}/votes", json={"option_id": option_b}, headers=bob)

        backend, http_client = _backend(alice)
        controller = await _controller(backend, poll_id, clock)
        option_a = sorted(controller.option_ids)[0]

        await controller.press(option_a)
        for _ in range(3):
            await asyncio.sleep(0)
        clock.advance(3.0)
        assert await controller.tick() == HoldOutcome.COMMITTED
        await controller.close()

        poll = client.get(f"/api/v1/polls/{poll_id}", headers=alice).json()
        assert poll["user_vote"] == option_a
        assert poll["total_votes"] == 2
        assert [o["percentage"] for o in poll["options"]] == [50, 50, 0]
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_edit_moves_existing_vote(self, client, clock, alice, db_session):
        poll_id = create_poll(client, alice)
        option_a, option_b, _ = [o["option_id"] for o in client.get(f"/api/v1/polls/{poll_id}").json()["options"]]
        client.post(f"/api/v1/polls/{poll_id}/votes", json={"option_id": option_a}, headers=alice)

        backend, http_client = _backend(alice)
        controller = await _controller(backend, poll_id, clock)
        controller.enter_edit_mode()
        await controller.press(option_b)
        clock.advance(3.0)
        assert await controller.release() == HoldOutcome.COMMITTED
        await controller.close()

        rows = db_session.query(UserVote).filter(UserVote.poll_id == poll_id).all()
        assert len(rows) == 1
        assert rows[0].option_id == option_b
        assert _tally(client, poll_id)["total_votes"] == 1
        await http_client.aclose()

    def test_concurrent_commits_leave_one_vote(self, client, clock, alice, db_session, monkeypatch):
        """Two processes pass the "not voted yet" check at the same time."""
        poll_id = create_poll(client, alice)
        option_a, option_b, _ = [o["option_id"] for o in client.get(f"/api/v1/polls/{poll_id}").json()["options"]]
        vote_service.cast_vote(db_session, poll_id, option_a, "user-alice", clock=clock)

        # The second process read before the first one committed
        monkeypatch.setattr(vote_service, "get_user_vote", lambda db, poll_id, user_id: None)
        with pytest.raises(AlreadyVotedError):
            vote_service.cast_vote(db_session, poll_id, option_b, "user-alice", clock=clock)

        rows = db_session.query(UserVote).filter(
            UserVote.poll_id == poll_id, UserVote.user_id == "user-alice"
        ).all()
        assert [row.option_id for row in rows] == [option_a]
