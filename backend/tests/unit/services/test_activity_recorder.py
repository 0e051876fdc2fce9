"""
Unit Tests for the Activity Recorder
"""
import asyncio
import uuid
import pytest
from unittest.mock import MagicMock, patch

from irp.models.activity_log import ActivityAction, ActivityResource
from irp.services.activity_recorder import ActivityEntry, ActivityRecorder, MAX_DESCRIPTION_LENGTH


def entry(user_id, **overrides) -> ActivityEntry:
    data = dict(
        user_id=str(user_id),
        action=ActivityAction.UPDATE,
        resource=ActivityResource.EVENT,
        description="Updated event",
        resource_id=str(uuid.uuid4()),
        details={"field": "venue"},
    )
    data.update(overrides)
    return ActivityEntry(**data)


def failing_factory():
    session = MagicMock()
    session.__aenter__.side_effect = RuntimeError("store unavailable")
    return session


@pytest.mark.asyncio
class TestActivityRecorder:

    async def test_record_persists_in_background(self, session_factory, test_user, activity_rows):
        recorder = ActivityRecorder(session_factory)

        task = recorder.record(entry(test_user.id))
        assert task is not None
        await recorder.drain()

        rows = await activity_rows()
        assert len(rows) == 1
        assert rows[0].action == ActivityAction.UPDATE
        assert rows[0].resource == ActivityResource.EVENT
        assert rows[0].details == {"field": "venue"}

    async def test_record_does_not_wait_for_write(self, session_factory, test_user):
        """record() returns before the write completes"""
        recorder = ActivityRecorder(session_factory)

        recorder.record(entry(test_user.id))

        assert recorder.pending_count == 1
        await recorder.drain()
        assert recorder.pending_count == 0

    async def test_failing_store_is_logged_not_raised(self, test_user):
        recorder = ActivityRecorder(failing_factory)

        with patch("irp.services.activity_recorder.logger") as mock_logger:
            ok = await recorder.persist(entry(test_user.id))

        assert ok is False
        mock_logger.log_activity_failure.assert_called_once()

    async def test_failing_store_in_background(self, test_user):
        recorder = ActivityRecorder(failing_factory)

        with patch("irp.services.activity_recorder.logger"):
            task = recorder.record(entry(test_user.id))
            await recorder.drain()

        assert task.result() is False

    async def test_long_description_truncated(self, session_factory, test_user, activity_rows):
        recorder = ActivityRecorder(session_factory)

        await recorder.persist(entry(test_user.id, description="x" * 800))

        rows = await activity_rows()
        assert len(rows[0].description) == MAX_DESCRIPTION_LENGTH

    async def test_details_are_json_encoded(self, session_factory, test_user, activity_rows):
        """Enums and datetimes in details are stored as plain JSON"""
        recorder = ActivityRecorder(session_factory)

        await recorder.persist(entry(test_user.id, details={"role": ActivityAction.LOGIN}))

        rows = await activity_rows()
        assert rows[0].details == {"role": "login"}

    async def test_drain_with_nothing_pending(self):
        await asyncio.wait_for(ActivityRecorder().drain(), timeout=1)
