"""Unit tests for vote service."""
from unittest.mock import Mock

import pytest
from sqlalchemy.exc import IntegrityError

from pushit.core.events import change_hub
from pushit.core.exceptions import (
    AlreadyVotedError,
    InvalidOptionError,
    PollClosedError,
    PollNotFoundError,
)
from pushit.db.models import UserVote
from pushit.services.holds import count_live_holds, start_hold
from pushit.db.session import check_dialect
from pushit.services.votes import _upsert_vote, cast_vote, get_user_vote, get_vote_tallies
from tests.utils import make_poll, option_ids


@pytest.mark.unit
class TestCastVote:

    def test_first_vote(self, db_session, clock):
        poll = make_poll(db_session, clock)
        yes = option_ids(poll)[0]

        result = cast_vote(db_session, poll.id, yes, "user-1", clock=clock)

        assert result == {"poll_id": poll.id, "option_id": yes, "updated": False}
        assert get_user_vote(db_session, poll.id, "user-1") == yes

    def test_second_vote_without_edit_rejected(self, db_session, clock):
        poll = make_poll(db_session, clock)
        first, second = option_ids(poll)[:2]
        cast_vote(db_session, poll.id, first, "user-1", clock=clock)

        with pytest.raises(AlreadyVotedError):
            cast_vote(db_session, poll.id, second, "user-1", clock=clock)

        assert get_user_vote(db_session, poll.id, "user-1") == first

    def test_edit_moves_vote_without_second_row(self, db_session, clock):
        poll = make_poll(db_session, clock)
        first, second = option_ids(poll)[:2]
        cast_vote(db_session, poll.id, first, "user-1", clock=clock)

        result = cast_vote(db_session, poll.id, second, "user-1", edit=True, clock=clock)

        assert result["updated"] is True
        rows = db_session.query(UserVote).filter(UserVote.poll_id == poll.id).all()
        assert len(rows) == 1
        assert get_user_vote(db_session, poll.id, "user-1") == second

    def test_edit_without_prior_vote_inserts(self, db_session, clock):
        poll = make_poll(db_session, clock)
        result = cast_vote(db_session, poll.id, option_ids(poll)[0], "user-1", edit=True, clock=clock)
        assert result["updated"] is False

    def test_closed_poll(self, db_session, clock):
        poll = make_poll(db_session, clock)
        clock.advance(24 * 3600)
        with pytest.raises(PollClosedError):
            cast_vote(db_session, poll.id, option_ids(poll)[0], "user-1", clock=clock)

    def test_archived_poll(self, db_session, clock):
        poll = make_poll(db_session, clock)
        poll.status = "archived"
        db_session.commit()
        with pytest.raises(PollClosedError):
            cast_vote(db_session, poll.id, option_ids(poll)[0], "user-1", clock=clock)

    def test_option_of_another_poll(self, db_session, clock):
        poll = make_poll(db_session, clock)
        other = make_poll(db_session, clock, question="Which season is best?")
        with pytest.raises(InvalidOptionError):
            cast_vote(db_session, poll.id, option_ids(other)[0], "user-1", clock=clock)

    def test_unknown_poll(self, db_session, clock):
        with pytest.raises(PollNotFoundError):
            cast_vote(db_session, 404, 1, "user-1", clock=clock)

    def test_integrity_error_becomes_already_voted(self, db_session, clock, monkeypatch):
        """A concurrent first vote loses on the unique constraint."""
        poll = make_poll(db_session, clock)
        monkeypatch.setattr(
            db_session, "flush", Mock(side_effect=IntegrityError("insert", {}, Exception("unique")))
        )
        with pytest.raises(AlreadyVotedError):
            cast_vote(db_session, poll.id, option_ids(poll)[0], "user-1", clock=clock)

    def test_vote_ends_confirming_hold(self, db_session, clock):
        poll = make_poll(db_session, clock)
        option = option_ids(poll)[0]
        hold = start_hold(db_session, "user-1", "poll_option", option, clock=clock)

        cast_vote(db_session, poll.id, option, "user-1", hold_id=hold.id, clock=clock)

        assert count_live_holds(db_session, "poll_option", option, clock=clock) == 0

    def test_foreign_hold_id_does_not_block_vote(self, db_session, clock):
        poll = make_poll(db_session, clock)
        option = option_ids(poll)[0]
        hold = start_hold(db_session, "user-2", "poll_option", option, clock=clock)

        result = cast_vote(db_session, poll.id, option, "user-1", hold_id=hold.id, clock=clock)

        assert result["option_id"] == option
        assert count_live_holds(db_session, "poll_option", option, clock=clock) == 1

    def test_publishes_vote_event(self, db_session, clock):
        poll = make_poll(db_session, clock)
        seen = []
        change_hub.add_listener(seen.append)

        cast_vote(db_session, poll.id, option_ids(poll)[0], "user-1", clock=clock)
        cast_vote(db_session, poll.id, option_ids(poll)[1], "user-1", edit=True, clock=clock)

        votes = [e for e in seen if e.table == "user_votes"]
        assert [e.event_type for e in votes] == ["INSERT", "UPDATE"]
        assert votes[0].payload["poll_id"] == poll.id


@pytest.mark.unit
class TestUpsertDialects:

    @pytest.mark.parametrize("name", ["postgresql", "sqlite"])
    def test_supported_dialects(self, name):
        check_dialect(name)

    def test_unsupported_dialect_rejected(self):
        with pytest.raises(ValueError, match="Unsupported database dialect 'mssql'"):
            check_dialect("mssql")

    def test_upsert_checks_dialect_before_writing(self):
        db = Mock()
        db.get_bind.return_value.dialect.name = "mysql"

        with pytest.raises(ValueError):
            _upsert_vote(db, 1, 2, "user-1", None)
        db.execute.assert_not_called()


@pytest.mark.unit
class TestTallies:

    def test_tallies_from_raw_rows(self, db_session, clock):
        poll = make_poll(db_session, clock)
        a, b, c = option_ids(poll)
        for user, option in [("u1", a), ("u2", a), ("u3", b)]:
            cast_vote(db_session, poll.id, option, user, clock=clock)

        tally = get_vote_tallies(db_session, poll.id)

        assert tally["total_votes"] == 3
        assert [(o["votes"], o["percentage"]) for o in tally["options"]] == [(2, 67), (1, 33), (0, 0)]

    def test_denormalized_counters_follow_votes(self, db_session, clock):
        poll = make_poll(db_session, clock)
        a, b, _ = option_ids(poll)
        cast_vote(db_session, poll.id, a, "u1", clock=clock)
        cast_vote(db_session, poll.id, b, "u1", edit=True, clock=clock)

        db_session.refresh(poll)
        assert poll.total_votes == 1
        assert [o.votes for o in poll.options] == [0, 1, 0]

    def test_tallies_ignore_stale_counters(self, db_session, clock):
        poll = make_poll(db_session, clock)
        poll.options[0].votes = 99
        poll.total_votes = 99
        db_session.commit()

        tally = get_vote_tallies(db_session, poll.id)
        assert tally["total_votes"] == 0
        assert tally["options"][0]["votes"] == 0

    def test_empty_poll_percentages_are_zero(self, db_session, clock):
        poll = make_poll(db_session, clock)
        assert all(o["percentage"] == 0 for o in get_vote_tallies(db_session, poll.id)["options"])

    def test_unknown_poll(self, db_session):
        with pytest.raises(PollNotFoundError):
            get_vote_tallies(db_session, 12345)
