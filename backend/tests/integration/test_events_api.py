"""
Integration Tests for events
Ownership by coordinator, capacity and registration rules
"""
import pytest
from datetime import datetime, timedelta
from httpx import AsyncClient

from irp.models import ActivityAction, ActivityResource, Event, EventStatus, UserRole


def event_payload(expert, **overrides) -> dict:
    data = {
        "title": "Cloud Native Architecture",
        "description": "A talk on running services at scale",
        "type": "workshop",
        "expert_id": expert.id,
        "scheduled_date": (datetime.utcnow() + timedelta(days=10)).isoformat(),
        "start_time": "14:00",
        "end_time": "16:00",
        "venue": "Seminar Hall 2",
        "capacity": 60,
    }
    data.update(overrides)
    return data


@pytest.fixture
async def two_coordinators(make_user, make_expert, make_event):
    """u1 coordinates ev1, u2 coordinates ev2"""
    u1 = await make_user(UserRole.COORDINATOR)
    u2 = await make_user(UserRole.COORDINATOR)
    expert = await make_expert(u1)
    ev1 = await make_event(expert, u1)
    ev2 = await make_event(expert, u2)
    return u1, u2, ev1, ev2


class TestEventOwnership:

    @pytest.mark.asyncio
    async def test_coordinator_updates_own_event(self, client: AsyncClient, two_coordinators, bearer, fetch):
        u1, u2, ev1, ev2 = two_coordinators

        response = await client.put(f'/api/v1/events/{ev1.id}', json={"venue": "Room 101"}, headers=bearer(u1))

        assert response.status_code == 200
        assert response.json()["venue"] == "Room 101"
        assert (await fetch(Event, ev1.id)).venue == "Room 101"

    @pytest.mark.asyncio
    async def test_coordinator_cannot_touch_other_event(self, client: AsyncClient, two_coordinators, bearer, fetch):
        u1, u2, ev1, ev2 = two_coordinators
        original_venue = ev2.venue

        for response in (
            await client.put(f'/api/v1/events/{ev2.id}', json={"venue": "Room 101"}, headers=bearer(u1)),
            await client.put(f'/api/v1/events/{ev2.id}/status', json={"status": "cancelled"}, headers=bearer(u1)),
            await client.delete(f'/api/v1/events/{ev2.id}', headers=bearer(u1)),
        ):
            assert response.status_code == 403
            assert response.json()["error"]["code"] == "NOT_RESOURCE_OWNER"

        event = await fetch(Event, ev2.id)
        assert event.venue == original_venue
        assert event.status == EventStatus.SCHEDULED
        assert event.is_active is True

    @pytest.mark.asyncio
    async def test_admin_updates_any_event(self, client: AsyncClient, two_coordinators, admin_auth_headers):
        u1, u2, ev1, ev2 = two_coordinators

        response = await client.put(f'/api/v1/events/{ev2.id}', json={"capacity": 80}, headers=admin_auth_headers)

        assert response.status_code == 200
        assert response.json()["capacity"] == 80

    @pytest.mark.asyncio
    async def test_create_defaults_coordinator_to_caller(self, client: AsyncClient, test_user, auth_headers, make_expert, activity_rows):
        expert = await make_expert(test_user)

        response = await client.post('/api/v1/events', json=event_payload(expert), headers=auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["coordinator_id"] == test_user.id
        assert data["duration"] == "2h"
        assert data["expert"]["id"] == expert.id

        rows = await activity_rows()
        assert (rows[0].action, rows[0].resource) == (ActivityAction.CREATE, ActivityResource.EVENT)
        assert rows[0].resource_id == data["id"]

    @pytest.mark.asyncio
    async def test_create_for_other_coordinator_forbidden(self, client: AsyncClient, two_coordinators, bearer, make_expert):
        u1, u2, ev1, ev2 = two_coordinators
        expert = await make_expert(u1)

        response = await client.post(
            '/api/v1/events', json=event_payload(expert, coordinator_id=u2.id), headers=bearer(u1)
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_creates_for_coordinator(self, client: AsyncClient, test_user, admin_user, admin_auth_headers, make_expert):
        expert = await make_expert(admin_user)

        response = await client.post(
            '/api/v1/events', json=event_payload(expert, coordinator_id=test_user.id), headers=admin_auth_headers
        )

        assert response.status_code == 201
        assert response.json()["coordinator_id"] == test_user.id
        assert response.json()["creator"]["id"] == admin_user.id


class TestEventValidation:

    @pytest.mark.asyncio
    async def test_inactive_expert_rejected(self, client: AsyncClient, test_user, auth_headers, make_expert):
        expert = await make_expert(test_user, is_active=False)

        response = await client.post('/api/v1/events', json=event_payload(expert), headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_REFERENCE"

    @pytest.mark.asyncio
    async def test_bad_time_format(self, client: AsyncClient, test_user, auth_headers, make_expert):
        expert = await make_expert(test_user)

        response = await client.post(
            '/api/v1/events', json=event_payload(expert, start_time="2pm"), headers=auth_headers
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_empty_update_rejected(self, client: AsyncClient, two_coordinators, bearer):
        u1, u2, ev1, ev2 = two_coordinators

        response = await client.put(f'/api/v1/events/{ev1.id}', json={}, headers=bearer(u1))

        assert response.status_code == 400

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["title", "venue", "capacity", "expert_id", "scheduled_date"])
    async def test_null_required_field_rejected(self, client: AsyncClient, two_coordinators, bearer, fetch, field):
        u1, u2, ev1, ev2 = two_coordinators

        response = await client.put(f'/api/v1/events/{ev1.id}', json={field: None}, headers=bearer(u1))

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        stored = await fetch(Event, ev1.id)
        assert getattr(stored, field) == getattr(ev1, field)

    @pytest.mark.asyncio
    async def test_empty_expert_id_rejected(self, client: AsyncClient, two_coordinators, bearer, fetch):
        u1, u2, ev1, ev2 = two_coordinators

        response = await client.put(f'/api/v1/events/{ev1.id}', json={"expert_id": ""}, headers=bearer(u1))

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_REFERENCE"
        assert (await fetch(Event, ev1.id)).expert_id == ev1.expert_id

    @pytest.mark.asyncio
    async def test_capacity_below_registrations(self, client: AsyncClient, test_user, auth_headers, make_expert, make_event):
        expert = await make_expert(test_user)
        event = await make_event(expert, test_user, capacity=10, registered_count=5)

        response = await client.put(f'/api/v1/events/{event.id}', json={"capacity": 4}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"]["details"]["field"] == "capacity"


class TestRegistration:

    @pytest.mark.asyncio
    async def test_register_until_full(self, client: AsyncClient, test_user, auth_headers, make_expert, make_event, fetch):
        expert = await make_expert(test_user)
        event = await make_event(expert, test_user, capacity=1)

        first = await client.post(f'/api/v1/events/{event.id}/register', headers=auth_headers)
        assert first.status_code == 200
        assert first.json() == {
            "message": "Successfully registered for the event",
            "registered_count": 1,
            "capacity": 1,
        }

        second = await client.post(f'/api/v1/events/{event.id}/register', headers=auth_headers)
        assert second.status_code == 400
        assert second.json()["error"]["code"] == "EVENT_FULL"

        assert (await fetch(Event, event.id)).registered_count == 1

    @pytest.mark.asyncio
    async def test_register_requires_scheduled(self, client: AsyncClient, test_user, auth_headers, make_expert, make_event):
        expert = await make_expert(test_user)
        event = await make_event(expert, test_user, status=EventStatus.COMPLETED)

        response = await client.post(f'/api/v1/events/{event.id}/register', headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "REGISTRATION_ERROR"

    @pytest.mark.asyncio
    async def test_deleted_event_not_found(self, client: AsyncClient, test_user, auth_headers, make_expert, make_event):
        expert = await make_expert(test_user)
        event = await make_event(expert, test_user)

        assert (await client.delete(f'/api/v1/events/{event.id}', headers=auth_headers)).status_code == 200

        response = await client.get(f'/api/v1/events/{event.id}', headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "EVENT_NOT_FOUND"


class TestEventQueries:

    @pytest.mark.asyncio
    async def test_filter_by_status_and_type(self, client: AsyncClient, test_user, auth_headers, make_expert, make_event):
        expert = await make_expert(test_user)
        scheduled = await make_event(expert, test_user)
        await make_event(expert, test_user, status=EventStatus.CANCELLED)

        response = await client.get('/api/v1/events', params={"status": "scheduled", "type": "talk"}, headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["id"] == scheduled.id

    @pytest.mark.asyncio
    async def test_upcoming_excludes_past(self, client: AsyncClient, test_user, auth_headers, make_expert, make_event):
        expert = await make_expert(test_user)
        upcoming = await make_event(expert, test_user)
        await make_event(expert, test_user, scheduled_date=datetime.utcnow() - timedelta(days=3))

        response = await client.get('/api/v1/events/stats/upcoming', headers=auth_headers)

        assert [e["id"] for e in response.json()] == [upcoming.id]

    @pytest.mark.asyncio
    async def test_by_coordinator(self, client: AsyncClient, two_coordinators, bearer):
        u1, u2, ev1, ev2 = two_coordinators

        response = await client.get(f'/api/v1/events/stats/by-coordinator/{u2.id}', headers=bearer(u1))

        assert [e["id"] for e in response.json()] == [ev2.id]
