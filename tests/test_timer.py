"""Tests for the focus timer state machine."""

import asyncio

import pytest

from conftest import TODAY, ManualScheduler
from focusflow.core.config import TimerConfig
from focusflow.core.errors import NotFound, ValidationError
from focusflow.focus.timer import FocusTimer, RepeatingTask, TimerState, UNSAVED_SESSION_WARNING


def make_timer(repo, scheduler, **config) -> FocusTimer:
    return FocusTimer(repo, TimerConfig(**config), scheduler=scheduler, clock=lambda: TODAY)


class TestCountdown:
    @pytest.mark.asyncio
    async def test_full_session_then_break(self, repo, scheduler):
        timer = make_timer(repo, scheduler, focus_minutes=25, break_minutes=5)
        completed = []
        totals = []
        timer.on_complete = completed.append
        timer.on_focus_minutes = totals.append

        await timer.start()
        assert timer.state is TimerState.RUNNING
        assert timer.session_id is not None

        await scheduler.advance(1)
        assert timer.time_display == "24:59"

        await scheduler.advance(1499)
        assert timer.state is TimerState.BREAK
        assert timer.time_display == "05:00"
        assert completed == [25]
        assert totals == [25]
        assert timer.focus_minutes_today == 25
        assert [s.completed for s in repo.sessions.values()] == [True]

        await scheduler.advance(300)
        assert timer.state is TimerState.IDLE
        assert timer.time_display == "25:00"
        assert scheduler.active is None

    @pytest.mark.asyncio
    async def test_without_breaks_goes_straight_to_idle(self, repo, scheduler):
        timer = make_timer(repo, scheduler, focus_minutes=1, breaks_enabled=False)

        await timer.start()
        await scheduler.advance(60)

        assert timer.state is TimerState.IDLE
        assert timer.focus_minutes_today == 1

    @pytest.mark.asyncio
    async def test_progress_percent(self, repo, scheduler):
        timer = make_timer(repo, scheduler, focus_minutes=1)
        await timer.start()
        await scheduler.advance(30)
        assert timer.progress_percent == 50.0

    @pytest.mark.asyncio
    async def test_one_transition_per_tick(self, repo, scheduler):
        timer = make_timer(repo, scheduler, focus_minutes=1)
        states = []
        timer.on_state_change = states.append

        await timer.start()
        await scheduler.advance(60)

        assert states == [TimerState.RUNNING, TimerState.BREAK]


class TestPauseResume:
    @pytest.mark.asyncio
    async def test_pause_freezes_countdown(self, repo, scheduler):
        timer = make_timer(repo, scheduler)
        await timer.start()
        await scheduler.advance(10)

        await timer.pause()
        assert timer.state is TimerState.PAUSED
        assert scheduler.active is None
        await scheduler.advance(100)
        assert timer.time_display == "24:50"

        await timer.resume()
        await scheduler.advance(1)
        assert timer.time_display == "24:49"

    @pytest.mark.asyncio
    async def test_pause_outside_running_is_ignored(self, repo, scheduler):
        timer = make_timer(repo, scheduler)
        await timer.pause()
        await timer.resume()
        assert timer.state is TimerState.IDLE

    @pytest.mark.asyncio
    async def test_start_while_running_is_ignored(self, repo, scheduler):
        timer = make_timer(repo, scheduler)
        await timer.start()
        session_id = timer.session_id
        await timer.start()
        assert timer.session_id == session_id
        assert len(repo.sessions) == 1


class TestReset:
    @pytest.mark.asyncio
    async def test_reset_deletes_running_session(self, repo, scheduler):
        timer = make_timer(repo, scheduler)
        await timer.start()
        await scheduler.advance(5)

        await timer.reset()

        assert timer.state is TimerState.IDLE
        assert timer.time_display == "25:00"
        assert timer.session_id is None
        assert repo.sessions == {}

    @pytest.mark.asyncio
    async def test_reset_from_paused(self, repo, scheduler):
        timer = make_timer(repo, scheduler)
        await timer.start()
        await timer.pause()
        await timer.reset()
        assert timer.state is TimerState.IDLE
        assert repo.sessions == {}

    @pytest.mark.asyncio
    async def test_reset_waits_for_in_flight_create(self, repo, scheduler):
        repo.create_session_gate = asyncio.Event()
        timer = make_timer(repo, scheduler)

        starting = asyncio.create_task(timer.start())
        await asyncio.sleep(0)
        assert timer.state is TimerState.RUNNING

        resetting = asyncio.create_task(timer.reset())
        await asyncio.sleep(0)
        assert timer.state is TimerState.IDLE

        repo.create_session_gate.set()
        await asyncio.gather(starting, resetting)

        assert repo.sessions == {}
        assert [op for op, _ in repo.writes] == ["create_focus_session", "delete_focus_session"]
        assert timer.session_id is None

    @pytest.mark.asyncio
    async def test_reset_during_break_skips_break(self, repo, scheduler):
        timer = make_timer(repo, scheduler, focus_minutes=1)
        await timer.start()
        await scheduler.advance(60)
        assert timer.state is TimerState.BREAK

        await timer.reset()

        assert timer.state is TimerState.IDLE
        assert timer.focus_minutes_today == 1
        assert all(s.completed for s in repo.sessions.values())

    @pytest.mark.asyncio
    async def test_skip_break(self, repo, scheduler):
        timer = make_timer(repo, scheduler, focus_minutes=1)
        await timer.start()
        await scheduler.advance(60)

        await timer.skip_break()

        assert timer.state is TimerState.IDLE
        assert timer.time_display == "01:00"


class TestPersistenceFailures:
    @pytest.mark.asyncio
    async def test_unsaved_session_still_runs(self, repo, scheduler):
        repo.fail_create_session = True
        timer = make_timer(repo, scheduler, focus_minutes=1)
        completed = []
        timer.on_complete = completed.append

        await timer.start()
        assert timer.state is TimerState.RUNNING
        assert timer.warning == UNSAVED_SESSION_WARNING
        assert timer.status.warning == UNSAVED_SESSION_WARNING

        await scheduler.advance(60)
        assert timer.state is TimerState.BREAK
        assert completed == [1]
        assert timer.focus_minutes_today == 0

    @pytest.mark.asyncio
    async def test_any_storage_layer_error_leaves_timer_running(self, repo, scheduler):
        repo.create_session_error = NotFound("user row vanished")
        timer = make_timer(repo, scheduler, focus_minutes=1)

        await timer.start()

        assert timer.state is TimerState.RUNNING
        assert timer.session_id is None
        assert timer.warning == UNSAVED_SESSION_WARNING
        await scheduler.advance(60)
        assert timer.state is TimerState.BREAK

    @pytest.mark.asyncio
    async def test_warning_clears_on_next_start(self, repo, scheduler):
        repo.fail_create_session = True
        timer = make_timer(repo, scheduler)
        await timer.start()
        await timer.reset()

        repo.fail_create_session = False
        await timer.start()
        assert timer.warning is None

    @pytest.mark.asyncio
    async def test_callback_errors_do_not_stop_ticking(self, repo, scheduler):
        timer = make_timer(repo, scheduler)

        def bad_tick(status):
            raise RuntimeError("render failed")

        timer.on_tick = bad_tick
        await timer.start()
        await scheduler.advance(3)
        assert timer.time_display == "24:57"


class TestConfiguration:
    def test_defaults_from_config(self, repo, scheduler):
        timer = make_timer(repo, scheduler, focus_minutes=50, break_minutes=10)
        assert timer.duration_minutes == 50
        assert timer.break_duration_minutes == 10
        assert timer.time_display == "50:00"

    def test_set_duration_while_idle(self, repo, scheduler):
        timer = make_timer(repo, scheduler)
        assert timer.set_duration(45)
        assert timer.time_display == "45:00"
        assert timer.set_break_duration(15)
        assert timer.break_duration_minutes == 15

    def test_rejects_non_positive_duration(self, repo, scheduler):
        timer = make_timer(repo, scheduler)
        with pytest.raises(ValidationError):
            timer.set_duration(0)
        with pytest.raises(ValidationError):
            timer.set_break_duration(-1)

    @pytest.mark.asyncio
    async def test_duration_locked_while_running(self, repo, scheduler):
        timer = make_timer(repo, scheduler)
        await timer.start()
        assert not timer.set_duration(45)
        assert not timer.set_break_duration(15)
        assert timer.duration_minutes == 25


class TestRefreshToday:
    @pytest.mark.asyncio
    async def test_counts_only_completed_sessions(self, repo, scheduler):
        timer = make_timer(repo, scheduler)
        done_id = await repo.create_focus_session(30)
        await repo.complete_focus_session(done_id)
        await repo.create_focus_session(25)

        assert await timer.refresh_today() == 30
        assert [s.id for s in timer.today_sessions] == [done_id]


class TestRepeatingTask:
    @pytest.mark.asyncio
    async def test_ticks_until_cancelled(self):
        ticks = []

        async def tick():
            ticks.append(1)

        task = RepeatingTask(0.001, tick)
        while len(ticks) < 3:
            await asyncio.sleep(0.001)
        task.cancel()
        count = len(ticks)
        await asyncio.sleep(0.01)

        assert task.cancelled
        assert len(ticks) == count

    @pytest.mark.asyncio
    async def test_cancel_from_inside_callback_finishes_callback(self):
        finished = asyncio.Event()
        holder = {}

        async def tick():
            holder["task"].cancel()
            await asyncio.sleep(0)
            finished.set()

        holder["task"] = RepeatingTask(0.001, tick)
        await asyncio.wait_for(finished.wait(), timeout=1)
        assert holder["task"].cancelled
