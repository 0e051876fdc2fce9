"""
Unit Tests for model behaviour that does not need a database
"""
import pytest

from irp.core.exceptions import EventCapacityError, RegistrationError
from irp.models import Event, Expert, Feedback


def event(**kwargs) -> Event:
    data = dict(start_time="10:00", end_time="11:30", capacity=2, registered_count=0)
    data.update(kwargs)
    return Event(**data)


class TestEvent:

    @pytest.mark.parametrize("start,end,expected", [
        ("10:00", "11:30", "1h 30m"),
        ("09:15", "10:00", "45m"),
        ("14:00", "16:00", "2h"),
        ("16:00", "14:00", "Invalid time range"),
    ])
    def test_duration(self, start, end, expected):
        assert event(start_time=start, end_time=end).duration == expected

    def test_register_until_full(self):
        e = event(capacity=2)

        e.register()
        e.register()

        assert e.registered_count == 2
        assert e.is_available is False
        with pytest.raises(EventCapacityError) as exc_info:
            e.register()
        assert exc_info.value.status_code == 400
        assert e.registered_count == 2

    def test_cancel_registration(self):
        e = event(registered_count=1)

        e.cancel_registration()

        assert e.registered_count == 0
        with pytest.raises(RegistrationError):
            e.cancel_registration()


class TestExpert:

    def test_update_rating_running_average(self):
        expert = Expert(rating_average=0.0, rating_count=0)

        expert.update_rating(5)
        expert.update_rating(3)

        assert expert.rating_count == 2
        assert expert.rating_average == 4.0

    def test_reset_rating(self):
        expert = Expert(rating_average=4.0, rating_count=2)

        expert.reset_rating([])
        assert (expert.rating_average, expert.rating_count) == (0.0, 0)

        expert.reset_rating([1, 2, 3])
        assert (expert.rating_average, expert.rating_count) == (2.0, 3)

    def test_full_address(self):
        expert = Expert(address={"street": "1 Main St", "city": "Pune", "country": "India", "zip_code": "411001"})

        assert expert.full_address == "1 Main St, Pune, India, 411001"

    def test_full_address_empty(self):
        assert Expert(address={"zip_code": "411001"}).full_address == ""


class TestFeedback:

    def test_satisfaction_score_averages_aspects(self):
        fb = Feedback(rating=2, aspects={"content": 4, "delivery": 5, "interaction": 4})

        assert fb.satisfaction_score == 4.3

    def test_satisfaction_score_falls_back_to_rating(self):
        assert Feedback(rating=3, aspects=None).satisfaction_score == 3
        assert Feedback(rating=5, aspects={}).satisfaction_score == 5
