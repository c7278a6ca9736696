import asyncio

import pytest

from race.logic.paragraph import FALLBACK_PARAGRAPH, ParagraphProvider
from race.logic.settings import RaceSettings
from race.messaging.types import SessionErrorCode, SessionMessageType
from race.session.models import RoundPhase
from race.session.session import RaceSession
from race.tests.mocks import FixedParagraphProvider
from race.tests.unit.session.helpers import join_players, message_types


class TestSessionStart:
    async def test_host_starts_round(self, session, provider):
        ann, bob = await join_players(session, "Ann", "Bob")
        await session.start(ann)

        assert session.phase == RoundPhase.IN_PROGRESS
        assert session.round_text == "the quick brown fox jumps"
        assert session.round_number == 1
        assert session.timer_pending
        assert provider.calls == 1
        for conn in (ann, bob):
            assert message_types(conn) == [SessionMessageType.PLAYERS, SessionMessageType.GAME_STARTED]
            assert conn.sent_messages[1]["paragraph"] == "the quick brown fox jumps"
        session.shutdown()

    async def test_non_host_rejected(self, session, provider):
        ann, bob = await join_players(session, "Ann", "Bob")
        await session.start(bob)

        assert session.phase == RoundPhase.NOT_STARTED
        assert provider.calls == 0
        assert bob.sent_messages == [
            {
                "type": SessionMessageType.ERROR,
                "code": SessionErrorCode.NOT_HOST,
                "message": "you are not the host, only the host can start the game",
            },
        ]
        assert ann.sent_messages == []

    async def test_start_while_in_progress_rejected(self, session, provider):
        (ann,) = await join_players(session, "Ann")
        await session.start(ann)
        ann.clear()

        await session.start(ann)

        assert provider.calls == 1
        assert session.round_number == 1
        assert ann.sent_messages[0]["code"] == SessionErrorCode.GAME_ALREADY_STARTED
        session.shutdown()

    async def test_in_progress_check_precedes_host_check(self, session):
        ann, bob = await join_players(session, "Ann", "Bob")
        await session.start(ann)
        bob.clear()

        await session.start(bob)

        assert bob.sent_messages[0]["code"] == SessionErrorCode.GAME_ALREADY_STARTED
        session.shutdown()

    async def test_new_round_resets_scores(self, session):
        ann, bob = await join_players(session, "Ann", "Bob")
        await session.start(ann)
        await session.player_typed(bob, "the quick", 40)
        await session._handle_timeout(session.round_number)
        ann.clear()

        await session.start(ann)

        reset = ann.messages_of_type(SessionMessageType.PLAYERS)[0]["players"]
        assert [(p["score"], p["wpm"]) for p in reset] == [(0, 0), (0, 0)]
        assert session.round_number == 2
        session.shutdown()

    async def test_provider_error_starts_round_with_fallback_text(self, emptied):
        class BrokenParagraphProvider(ParagraphProvider):
            async def fetch_paragraph(self) -> str:
                raise ValueError("no text")

        session = RaceSession("room1", paragraph_provider=BrokenParagraphProvider(), on_empty=emptied.append)
        ann, bob = await join_players(session, "Ann", "Bob")

        await session.start(ann)

        assert session.phase == RoundPhase.IN_PROGRESS
        assert session.round_text == FALLBACK_PARAGRAPH
        assert session.timer_pending
        assert bob.messages_of_type(SessionMessageType.GAME_STARTED)[0]["paragraph"] == FALLBACK_PARAGRAPH

        await session.player_typed(bob, "In a quiet", 30)
        assert session.get_player(bob.connection_id).score == 3
        session.shutdown()


class TestSessionTyping:
    async def test_score_is_matching_word_prefix(self, session):
        ann, bob = await join_players(session, "Ann", "Bob")
        await session.start(ann)
        ann.clear()
        bob.clear()

        await session.player_typed(bob, "the quick brwn fox", 72.5)

        expected = {"type": SessionMessageType.PLAYER_SCORE, "id": "conn-bob", "score": 2, "wpm": 72.5}
        assert ann.sent_messages == [expected]
        assert bob.sent_messages == [expected]
        assert session.get_player("conn-bob").score == 2
        session.shutdown()

    async def test_typing_before_start_rejected(self, session):
        (ann,) = await join_players(session, "Ann")
        await session.player_typed(ann, "the", 10)

        assert ann.sent_messages[0]["code"] == SessionErrorCode.GAME_NOT_STARTED
        assert session.get_player("conn-ann").score == 0

    async def test_typing_after_round_finished_rejected(self, session):
        (ann,) = await join_players(session, "Ann")
        await session.start(ann)
        await session._handle_timeout(session.round_number)
        ann.clear()

        await session.player_typed(ann, "the quick", 10)

        assert message_types(ann) == [SessionMessageType.ERROR]
        assert ann.sent_messages[0]["code"] == SessionErrorCode.GAME_NOT_STARTED
        session.shutdown()

    async def test_score_can_go_down(self, session):
        """Each update recomputes from scratch; deleting words lowers the score."""
        (ann,) = await join_players(session, "Ann")
        await session.start(ann)

        await session.player_typed(ann, "the quick brown", 30)
        await session.player_typed(ann, "the", 31)

        assert session.get_player("conn-ann").score == 1
        assert session.get_player("conn-ann").wpm == 31
        session.shutdown()


class TestSessionTimeout:
    async def test_timeout_finishes_round_and_broadcasts_final_roster(self, session):
        ann, bob = await join_players(session, "Ann", "Bob")
        await session.start(ann)
        await session.player_typed(bob, "the quick brown", 50)
        ann.clear()

        await session._handle_timeout(session.round_number)

        assert session.phase == RoundPhase.FINISHED
        assert message_types(ann) == [SessionMessageType.GAME_FINISHED, SessionMessageType.PLAYERS]
        final = ann.sent_messages[1]["players"]
        assert final[1] == {"id": "conn-bob", "name": "Bob", "score": 3, "wpm": 50}
        session.shutdown()

    async def test_stale_round_timeout_ignored(self, session):
        (ann,) = await join_players(session, "Ann")
        await session.start(ann)
        await session._handle_timeout(1)
        await session.start(ann)
        ann.clear()

        await session._handle_timeout(1)

        assert session.phase == RoundPhase.IN_PROGRESS
        assert ann.sent_messages == []
        session.shutdown()

    async def test_timer_fires_after_round_duration(self, emptied):
        session = RaceSession(
            "fast",
            paragraph_provider=FixedParagraphProvider(),
            settings=RaceSettings(round_duration_seconds=0.01),
            on_empty=emptied.append,
        )
        (ann,) = await join_players(session, "Ann")
        await session.start(ann)

        for _ in range(100):
            if session.phase == RoundPhase.FINISHED:
                break
            await asyncio.sleep(0.01)

        assert session.phase == RoundPhase.FINISHED
        assert SessionMessageType.GAME_FINISHED in message_types(ann)

    @pytest.mark.parametrize("duration", [0, -5])
    def test_round_duration_must_be_positive(self, duration):
        with pytest.raises(ValueError, match="round_duration_seconds"):
            RaceSettings(round_duration_seconds=duration)
