"""Tests for LiveMergeEngine."""

import pytest

from ledgerchat.conversation import LiveMergeEngine, Timeline, normalize
from ledgerchat.models import ConversationRef, EventKind, RawEvent
from ledger_util import (
    ALICE,
    BOB,
    CAROL,
    direct_attachment,
    direct_text,
    group_text,
)

DIRECT = ConversationRef.direct(BOB)


@pytest.fixture
def engine(mock_names):
    """Engine for alice's conversation with bob, timeline attached."""
    return LiveMergeEngine(DIRECT, ALICE, mock_names, timeline=Timeline())


class TestRelevance:
    """Tests for deciding whether a live event belongs to the conversation."""

    @pytest.mark.parametrize(
        "sender,recipient,expected",
        [
            (ALICE, BOB, True),
            (BOB, ALICE, True),
            (BOB.upper().replace("0X", "0x"), ALICE, True),
            (CAROL, ALICE, False),
            (ALICE, CAROL, False),
            (CAROL, BOB, False),
            (BOB, BOB, False),
        ],
    )
    def test_direct_pair(self, engine, sender, recipient, expected):
        """Test the unordered participant pair check."""
        assert engine.is_relevant(direct_text(sender, recipient, "x")) is expected

    def test_unrelated_attachment(self, engine):
        """Test that a third party's attachment is ignored."""
        event = direct_attachment(CAROL, ALICE, "QmX", "x.png")
        assert not engine.is_relevant(event)

    def test_group_event_not_relevant_to_direct(self, engine):
        assert not engine.is_relevant(group_text(BOB, 1, "x"))

    def test_group_id_match(self, mock_names):
        """Test that group relevance is by id only."""
        engine = LiveMergeEngine(ConversationRef.group(5), ALICE, mock_names)
        assert engine.is_relevant(group_text(CAROL, 5, "x"))
        assert not engine.is_relevant(group_text(CAROL, 6, "x"))
        assert not engine.is_relevant(direct_text(ALICE, BOB, "x"))

    def test_missing_address_not_relevant(self, engine):
        """Test that a direct event without a sender is ignored."""
        event = RawEvent(
            kind=EventKind.DIRECT_TEXT,
            from_address=None,  # type: ignore
            to_address=ALICE,
            payload={"message": "x"},
            timestamp=1,
            sequence=1,
        )
        assert not engine.is_relevant(event)

    def test_contact_events_never_relevant(self, engine):
        event = RawEvent(
            kind=EventKind.FRIEND_ADDED,
            from_address=ALICE,
            to_address=BOB,
            timestamp=1,
            sequence=1,
        )
        assert not engine.is_relevant(event)


class TestLiveEvents:
    """Tests for appending live events."""

    @pytest.mark.asyncio
    async def test_relevant_event_appended_with_name(self, engine, mock_names):
        """Test that a relevant event is normalized, named and appended."""
        message = await engine.on_live_event(direct_text(BOB, ALICE, "yo", sequence=1))

        assert message.body == "yo"
        assert message.sender_name == "Someone"
        assert engine.timeline.get_all() == [message]
        mock_names.resolve.assert_awaited_once_with(BOB)

    @pytest.mark.asyncio
    async def test_irrelevant_event_ignored(self, engine, mock_names):
        """Test that unrelated events leave the timeline untouched."""
        result = await engine.on_live_event(direct_text(CAROL, BOB, "psst"))

        assert result is None
        assert len(engine.timeline) == 0
        mock_names.resolve.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_duplicate_event_ignored(self, engine):
        """Test that an already present event is not appended again."""
        event = direct_text(BOB, ALICE, "yo", sequence=1)
        await engine.on_live_event(event)
        assert await engine.on_live_event(event) is None
        assert len(engine.timeline) == 1

    @pytest.mark.asyncio
    async def test_event_already_in_backfill(self, mock_names):
        """Test overlap between backfill and live feed."""
        event = direct_text(BOB, ALICE, "overlap", sequence=7)
        timeline = Timeline([normalize(event, DIRECT)])
        engine = LiveMergeEngine(DIRECT, ALICE, mock_names, timeline=timeline)

        assert await engine.on_live_event(event) is None
        assert len(timeline) == 1


class TestPending:
    """Tests for events arriving before the backfill is attached."""

    @pytest.mark.asyncio
    async def test_events_held_until_attach(self, mock_names):
        """Test that early events are merged on attach without duplicates."""
        engine = LiveMergeEngine(DIRECT, ALICE, mock_names)
        early = direct_text(BOB, ALICE, "early", timestamp=300, sequence=9)
        overlap = direct_text(ALICE, BOB, "both", timestamp=200, sequence=5)

        await engine.on_live_event(early)
        await engine.on_live_event(overlap)
        assert len(engine.pending) == 2
        assert engine.timeline is None

        backfill = Timeline(
            [
                normalize(direct_text(BOB, ALICE, "old", timestamp=100, sequence=1), DIRECT),
                normalize(overlap, DIRECT),
            ]
        )
        added = engine.attach(backfill)

        assert [m.body for m in added] == ["early"]
        assert [m.body for m in engine.timeline] == ["old", "both", "early"]
        assert engine.pending == []

    @pytest.mark.asyncio
    async def test_pending_dedup(self, mock_names):
        engine = LiveMergeEngine(DIRECT, ALICE, mock_names)
        event = direct_text(BOB, ALICE, "x", sequence=1)
        await engine.on_live_event(event)
        await engine.on_live_event(event)
        assert len(engine.pending) == 1


class TestMerge:
    """Tests for merging an additional backfill."""

    @pytest.mark.asyncio
    async def test_merge_adds_only_missing(self, engine):
        """Test that a gap backfill adds only what the live feed missed."""
        seen = direct_text(BOB, ALICE, "seen", timestamp=100, sequence=1)
        missed = direct_text(BOB, ALICE, "missed", timestamp=101, sequence=2)
        await engine.on_live_event(seen)

        added = await engine.merge([normalize(seen, DIRECT), normalize(missed, DIRECT)])

        assert [m.body for m in added] == ["missed"]
        assert [m.body for m in engine.timeline] == ["seen", "missed"]
