"""Tests for the idle-silence storyteller and its timer."""

import asyncio

import pytest

from chimein.config.schema import AfkModeConfig, CommitPolicy
from chimein.errors import CompletionError
from chimein.modes.afk import IdleSilenceHandler, looks_like_question
from chimein.orchestrator.idle_timer import IdleTimer
from chimein.orchestrator.state import SilenceState


@pytest.fixture
def silence(clock):
    return SilenceState(last_message_at=clock.now)


@pytest.fixture
def afk(ctx, silence):
    return IdleSilenceHandler(ctx, AfkModeConfig(enabled=True), silence)


@pytest.fixture
def timer(afk):
    return IdleTimer(afk, interval_s=30)


class TestStoryBranch:
    """At most one story per uninterrupted silence period."""

    @pytest.mark.asyncio
    async def test_three_timer_fires_one_story(self, timer, completion, sender, clock):
        completion.default = "Did you know snails can sleep for three years?"
        results = []
        for _ in range(3):
            clock.advance(30)
            results.append(await timer.tick())

        # 30s is not yet silent enough, 60s and 90s are the same period
        assert results == [False, True, False]
        assert sender.texts == ["Did you know snails can sleep for three years?"]
        assert sender.sent[0][0] == "gigasnail"

    @pytest.mark.asyncio
    async def test_new_message_opens_new_period(self, timer, silence, sender, clock):
        clock.advance(61)
        assert await timer.tick()

        silence.note_message(clock.now)
        clock.advance(61)
        assert await timer.tick()
        assert len(sender.sent) == 2

    @pytest.mark.asyncio
    async def test_records_story_time_and_resets_ambient(self, afk, ctx, silence, clock):
        ctx.ambient.messages_since_last_response = 4
        clock.advance(60)

        assert await afk.maybe_tell_story()

        assert silence.story_told
        assert silence.last_story_at == clock.now
        assert ctx.ambient.messages_since_last_response == 0

    @pytest.mark.asyncio
    async def test_timer_and_dispatch_race(self, afk, completion, sender, clock):
        """Two triggers in the same silence period produce one story."""
        completion.release = asyncio.Event()
        clock.advance(61)

        first = asyncio.create_task(afk.maybe_tell_story())
        await asyncio.sleep(0)
        second = await afk.maybe_tell_story()
        completion.release.set()

        assert second is False
        assert await first is True
        assert len(completion.calls) == 1
        assert len(sender.sent) == 1

    @pytest.mark.asyncio
    async def test_message_during_generation_keeps_new_period_open(self, afk, silence, completion, clock):
        completion.release = asyncio.Event()
        clock.advance(61)

        task = asyncio.create_task(afk.maybe_tell_story())
        await asyncio.sleep(0)
        silence.note_message(clock.now)
        completion.release.set()
        await task

        assert silence.story_told is False

    @pytest.mark.asyncio
    async def test_lazy_failure_leaves_flag_clear(self, afk, silence, completion, clock):
        completion.replies = [CompletionError("down")]
        clock.advance(61)

        with pytest.raises(CompletionError):
            await afk.maybe_tell_story()
        assert silence.story_told is False

    @pytest.mark.asyncio
    async def test_eager_marks_before_and_rolls_back(self, afk, ctx, silence, completion, clock):
        ctx.gate.policy = CommitPolicy.EAGER
        completion.release = asyncio.Event()
        completion.replies = [CompletionError("down")]
        clock.advance(61)

        task = asyncio.create_task(afk.maybe_tell_story())
        await asyncio.sleep(0)
        assert silence.story_told is True

        completion.release.set()
        with pytest.raises(CompletionError):
            await task
        assert silence.story_told is False

    @pytest.mark.asyncio
    async def test_disabled_mode_tells_nothing(self, timer, afk, sender, clock):
        afk.config.enabled = False
        clock.advance(120)
        assert not await timer.tick()
        assert sender.sent == []

    def test_enabling_resets_flag(self, afk, silence):
        silence.story_told = True
        afk.on_enabled()
        assert silence.story_told is False


class TestQuestionBranch:
    """Recent questions are answered half of the time."""

    @pytest.mark.parametrize("text,expected", [
        ("anyone know the song?", True),
        ("What game is this", True),
        ("how do you do that", True),
        ("whatever lol", False),
        ("somehow it worked", False),
        ("gg", False),
    ])
    def test_question_detection(self, text, expected):
        assert looks_like_question(text) is expected

    @pytest.mark.asyncio
    async def test_answers_on_winning_draw(self, afk, ctx, rng, sender, msg):
        ctx.buffer.append(msg("what rank is he?"))
        rng.draws = [0.4]

        assert await afk.handle(msg("what rank is he?"))
        assert len(sender.sent) == 1
        assert ctx.ambient_cooldown.last_triggered_at != 0.0

    @pytest.mark.asyncio
    async def test_skips_on_losing_draw(self, afk, ctx, rng, completion, msg):
        ctx.buffer.append(msg("what rank is he?"))
        rng.draws = [0.6]

        assert not await afk.handle(msg("what rank is he?"))
        assert completion.calls == []

    @pytest.mark.asyncio
    async def test_question_cooldown(self, afk, ctx, clock, completion, msg):
        ctx.buffer.append(msg("why though"))
        assert await afk.maybe_answer_question(msg("why though"))
        clock.advance(29)
        assert not await afk.maybe_answer_question(msg("why though"))
        assert len(completion.calls) == 1

    @pytest.mark.asyncio
    async def test_no_question_no_call(self, afk, ctx, completion, msg):
        ctx.buffer.append(msg("gg"))
        assert not await afk.handle(msg("gg"))
        assert completion.calls == []


class TestIdleTimer:
    @pytest.mark.asyncio
    async def test_start_stop(self, timer):
        timer.start()
        assert timer.is_running
        timer.stop()
        assert not timer.is_running
