"""
Tests for the per-run progress channel.
"""

import asyncio
import uuid

import pytest

from app.services import ProgressBroadcaster, complete_event, progress_event


async def drain(events):
    return await asyncio.wait_for(_collect(events), 5)


async def _collect(events):
    return [event async for event in events]


@pytest.fixture
def broadcaster():
    return ProgressBroadcaster()


class TestProgressBroadcaster:

    @pytest.mark.asyncio
    async def test_listen_without_channel_ends_immediately(self, broadcaster):
        async with broadcaster.listen(uuid.uuid4()) as events:
            assert await drain(events) == []

    @pytest.mark.asyncio
    async def test_events_fan_out_to_every_observer(self, broadcaster):
        run_id = uuid.uuid4()
        broadcaster.open(run_id)

        async with broadcaster.listen(run_id) as first, broadcaster.listen(run_id) as second:
            broadcaster.publish(run_id, progress_event(1, 1, "q"))
            broadcaster.publish(run_id, complete_event(run_id))
            broadcaster.close(run_id)

            expected = [
                {"type": "progress", "processed": 1, "total": 1, "currentPrompt": "q"},
                {"type": "complete", "runId": str(run_id)},
            ]
            assert await drain(first) == expected
            assert await drain(second) == expected

    @pytest.mark.asyncio
    async def test_late_observer_gets_only_new_events(self, broadcaster):
        run_id = uuid.uuid4()
        broadcaster.open(run_id)
        broadcaster.publish(run_id, progress_event(1, 2, "first"))

        async with broadcaster.listen(run_id) as late:
            broadcaster.publish(run_id, progress_event(2, 2, "second"))
            broadcaster.close(run_id)

            assert [e["currentPrompt"] for e in await drain(late)] == ["second"]

    @pytest.mark.asyncio
    async def test_disconnect_removes_observer(self, broadcaster):
        run_id = uuid.uuid4()
        broadcaster.open(run_id)

        async with broadcaster.listen(run_id) as events:
            assert broadcaster.observer_count(run_id) == 1
            broadcaster.publish(run_id, progress_event(1, 3, "q"))
            await events.__anext__()

        assert broadcaster.observer_count(run_id) == 0
        # Publishing with nobody listening is fine
        broadcaster.publish(run_id, progress_event(2, 3, "q"))
        assert broadcaster.is_open(run_id)

    @pytest.mark.asyncio
    async def test_observer_detached_when_iteration_never_started(self, broadcaster):
        run_id = uuid.uuid4()
        broadcaster.open(run_id)

        async with broadcaster.listen(run_id):
            assert broadcaster.observer_count(run_id) == 1

        assert broadcaster.observer_count(run_id) == 0

    @pytest.mark.asyncio
    async def test_observer_detached_on_error(self, broadcaster):
        run_id = uuid.uuid4()
        broadcaster.open(run_id)

        with pytest.raises(RuntimeError):
            async with broadcaster.listen(run_id):
                raise RuntimeError("client went away")

        assert broadcaster.observer_count(run_id) == 0

    def test_publish_without_channel_is_a_no_op(self, broadcaster):
        broadcaster.publish(uuid.uuid4(), progress_event(1, 1, "q"))

    def test_close_tears_down_channel(self, broadcaster):
        run_id = uuid.uuid4()
        broadcaster.open(run_id)
        assert broadcaster.is_open(run_id)

        broadcaster.close(run_id)
        broadcaster.close(run_id)

        assert not broadcaster.is_open(run_id)

    def test_channels_are_keyed_by_run(self, broadcaster):
        run_id = uuid.uuid4()
        broadcaster.open(run_id)

        # UUID and its string form name the same channel
        assert broadcaster.is_open(str(run_id))
        assert not broadcaster.is_open(uuid.uuid4())
