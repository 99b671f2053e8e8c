"""
Tests for AutomationController lifecycle, tick gating and failure isolation.
"""

import asyncio

import pytest

from autonews.orchestrator.scheduler import (
    AsyncioIntervalTimer,
    AutomationController,
    TopicRotation,
)


class JobRecorder:
    """create_job stand-in that records topics and can fail on demand."""

    def __init__(self, fail_topics=()):
        self.topics = []
        self.fail_topics = set(fail_topics)

    async def __call__(self, topic):
        if topic in self.fail_topics:
            raise ConnectionError(f"news source unreachable for {topic}")
        self.topics.append(topic)
        return f"job-{len(self.topics)}"


@pytest.fixture
def recorder():
    return JobRecorder()


@pytest.fixture
def controller(recorder, timer):
    return AutomationController(recorder, ["technology", "science"], timer=timer, interval=60)


class TestLifecycle:
    def test_initial_state(self, controller, timer):
        assert controller.state == "stopped"
        assert not timer.armed

    def test_start_is_idempotent(self, controller, timer):
        controller.start()
        controller.start()
        assert controller.state == "running"
        assert timer.start_calls == 1
        assert timer.interval == 60

    def test_pause_and_resume(self, controller, timer):
        controller.start()
        controller.pause()
        assert controller.state == "paused"
        assert not timer.armed

        controller.resume()
        assert controller.state == "running"
        assert timer.armed

    def test_start_while_paused_stays_paused(self, controller, timer):
        controller.start()
        controller.pause()
        controller.start()
        assert controller.state == "paused"
        assert not timer.armed

    def test_resume_when_stopped_is_noop(self, controller, timer):
        controller.resume()
        assert controller.state == "stopped"
        assert timer.start_calls == 0

    def test_stop_from_paused(self, controller, timer):
        controller.start()
        controller.pause()
        controller.stop()
        assert controller.state == "stopped"
        controller.start()
        assert controller.state == "running"

    def test_rejects_bad_interval(self, recorder, timer):
        with pytest.raises(ValueError):
            AutomationController(recorder, ["technology"], timer=timer, interval=0)


class TestTicks:
    @pytest.mark.asyncio
    async def test_tick_creates_job_while_running(self, controller, timer, recorder):
        controller.start()
        job_id = await timer.fire()
        assert job_id == "job-1"
        assert recorder.topics == ["technology"]

    @pytest.mark.asyncio
    async def test_pause_blocks_tick_resume_allows_one(self, controller, timer, recorder):
        controller.start()
        controller.pause()

        await timer.fire()
        assert recorder.topics == []

        controller.resume()
        await timer.fire()
        assert len(recorder.topics) == 1

    @pytest.mark.asyncio
    async def test_tick_when_stopped_does_nothing(self, controller, recorder):
        assert await controller.tick() is None
        assert recorder.topics == []

    @pytest.mark.asyncio
    async def test_trigger_now_bypasses_pause(self, controller, timer, recorder):
        controller.start()
        controller.pause()

        job_id = await controller.trigger_now()

        assert job_id == "job-1"
        assert recorder.topics == ["technology"]
        assert controller.state == "paused"
        assert timer.start_calls == 1

    @pytest.mark.asyncio
    async def test_trigger_now_leaves_timer_alone(self, controller, timer):
        controller.start()
        await controller.trigger_now()
        assert timer.armed
        assert timer.start_calls == 1

    @pytest.mark.asyncio
    async def test_topics_rotate(self, controller, timer, recorder):
        controller.start()
        for _ in range(3):
            await timer.fire()
        assert recorder.topics == ["technology", "science", "technology"]

    @pytest.mark.asyncio
    async def test_failed_cycle_does_not_stop_later_cycles(self, timer):
        recorder = JobRecorder(fail_topics={"technology"})
        controller = AutomationController(recorder, ["technology", "science"], timer=timer, interval=60)
        controller.start()

        assert await timer.fire() is None
        assert await timer.fire() == "job-1"

        assert recorder.topics == ["science"]
        assert controller.state == "running"
        assert controller.stats.cycles == 2
        assert controller.stats.failures == 1
        assert controller.stats.jobs_created == 1
        assert controller.stats.last_error is None

    @pytest.mark.asyncio
    async def test_trigger_now_failure_is_swallowed(self, timer):
        controller = AutomationController(
            JobRecorder(fail_topics={"world"}), ["world"], timer=timer, interval=60
        )
        assert await controller.trigger_now() is None
        assert "unreachable" in controller.stats.last_error

    def test_status_snapshot(self, controller):
        controller.start()
        status = controller.status()
        assert status["state"] == "running"
        assert status["timer_armed"] is True
        assert status["topics"] == ["technology", "science"]
        assert status["stats"]["cycles"] == 0


class TestTopicRotation:
    def test_round_robin(self):
        rotation = TopicRotation(["a", "b"])
        assert [rotation.next() for _ in range(5)] == ["a", "b", "a", "b", "a"]

    def test_blank_topics_dropped(self):
        rotation = TopicRotation([" world ", "", "  "])
        assert rotation.topics == ["world"]

    def test_requires_a_topic(self):
        with pytest.raises(ValueError):
            TopicRotation([])


class TestAsyncioIntervalTimer:
    @pytest.mark.asyncio
    async def test_fires_repeatedly_until_stopped(self):
        ticks = []

        async def callback():
            ticks.append(1)

        timer = AsyncioIntervalTimer()
        timer.start(0.01, callback)
        timer.start(0.01, callback)  # second start is a no-op
        await asyncio.sleep(0.1)
        timer.stop()
        await asyncio.sleep(0.02)
        fired = len(ticks)
        await asyncio.sleep(0.05)

        assert fired >= 2
        assert len(ticks) == fired
        assert not timer.armed

    @pytest.mark.asyncio
    async def test_controller_with_real_timer(self, recorder):
        controller = AutomationController(recorder, ["technology"], interval=0.01)
        controller.start()
        await asyncio.sleep(0.08)
        controller.pause()
        await asyncio.sleep(0.02)
        created = len(recorder.topics)
        await asyncio.sleep(0.05)

        assert created >= 1
        assert len(recorder.topics) == created

    @pytest.mark.asyncio
    async def test_aclose_waits_for_running_cycle(self):
        started = asyncio.Event()
        release = asyncio.Event()
        finished = []

        async def slow_create_job(topic):
            started.set()
            await release.wait()
            finished.append(topic)
            return "job-1"

        controller = AutomationController(slow_create_job, ["technology"], interval=0.05)
        controller.start()
        await asyncio.wait_for(started.wait(), timeout=1)

        closing = asyncio.create_task(controller.aclose())
        await asyncio.sleep(0.02)
        assert not closing.done()
        assert controller.state == "stopped"

        release.set()
        await asyncio.wait_for(closing, timeout=1)
        assert finished and set(finished) == {"technology"}
        assert controller.stats.jobs_created == len(finished)
