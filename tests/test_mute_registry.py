"""Tests for human-handoff mutes."""

from datetime import timedelta

import pytest

DAY = timedelta(hours=24)


class TestMute:
    def test_unknown_conversation_not_muted(self, mutes):
        assert not mutes.is_muted("a@c.us")

    def test_muted_until_deadline(self, mutes, clock):
        expires_at = mutes.mute("a@c.us", DAY)
        assert expires_at == clock.now + DAY
        clock.advance(hours=23, minutes=59)
        assert mutes.is_muted("a@c.us")

    def test_expires_at_deadline(self, mutes, clock):
        mutes.mute("a@c.us", DAY)
        clock.advance(hours=24)
        assert not mutes.is_muted("a@c.us")
        assert mutes.expires_at("a@c.us") is None

    def test_expired_entry_is_dropped(self, mutes, clock):
        mutes.mute("a@c.us", DAY)
        clock.advance(hours=25)
        assert not mutes.is_muted("a@c.us")
        assert mutes.unmute("a@c.us") is False

    def test_mute_again_extends(self, mutes, clock):
        mutes.mute("a@c.us", DAY)
        clock.advance(hours=20)
        mutes.mute("a@c.us", DAY)
        clock.advance(hours=10)
        assert mutes.is_muted("a@c.us")

    def test_mutes_are_per_conversation(self, mutes):
        mutes.mute("a@c.us", DAY)
        assert not mutes.is_muted("b@c.us")

    @pytest.mark.parametrize("duration", [timedelta(0), timedelta(minutes=-1)])
    def test_rejects_non_positive_duration(self, mutes, duration):
        with pytest.raises(ValueError):
            mutes.mute("a@c.us", duration)


class TestUnmute:
    def test_unmute_one(self, mutes):
        mutes.mute("a@c.us", DAY)
        mutes.mute("b@c.us", DAY)
        assert mutes.unmute("a@c.us") is True
        assert not mutes.is_muted("a@c.us")
        assert mutes.is_muted("b@c.us")

    def test_unmute_unknown(self, mutes):
        assert mutes.unmute("a@c.us") is False

    def test_unmute_all(self, mutes):
        mutes.mute("a@c.us", DAY)
        mutes.mute("b@c.us", DAY)
        assert mutes.unmute_all() == 2
        assert not mutes.is_muted("a@c.us")
        assert not mutes.is_muted("b@c.us")


class TestPurge:
    def test_purge_only_expired(self, mutes, clock):
        mutes.mute("short@c.us", timedelta(hours=1))
        mutes.mute("long@c.us", DAY)
        clock.advance(hours=2)
        assert mutes.purge_expired() == 1
        assert mutes.is_muted("long@c.us")
        assert mutes.expires_at("short@c.us") is None
