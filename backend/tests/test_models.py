"""
Model Tests

Tests for the Participant and Location pydantic models.
"""

import pytest
from pydantic import ValidationError

from tracker.models import Location, Participant


class TestLocation:
    """Tests for Location model"""

    def test_location_creation(self):
        location = Location(latitude=28.6139, longitude=77.2090)
        assert location.latitude == 28.6139
        assert location.longitude == 77.2090

    def test_location_requires_both_coordinates(self):
        with pytest.raises(ValidationError):
            Location(latitude=1.0)


class TestParticipant:
    """Tests for Participant model"""

    def test_defaults(self):
        participant = Participant(connection_id="sid-1")

        assert participant.display_name is None
        assert participant.attrs == {}
        assert not participant.is_named
        assert not participant.has_location
        assert participant.connected_at > 0

    def test_location_payload(self):
        participant = Participant(
            connection_id="sid-1",
            display_name="bob",
            attrs={"gender": "male"},
            last_location=Location(latitude=1.0, longitude=2.0),
        )

        assert participant.to_location_payload() == {
            "id": "sid-1",
            "name": "bob",
            "attrs": {"gender": "male"},
            "latitude": 1.0,
            "longitude": 2.0,
        }

    def test_location_payload_without_location(self):
        payload = Participant(connection_id="sid-1").to_location_payload()

        assert payload["name"] is None
        assert payload["latitude"] is None

    def test_deep_copy_is_independent(self):
        participant = Participant(connection_id="sid-1", attrs={"k": "v"})

        copy = participant.model_copy(deep=True)
        copy.attrs["k"] = "changed"

        assert participant.attrs == {"k": "v"}
