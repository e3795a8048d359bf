"""
Unit tests for request schemas and validation error formatting.
"""

import pytest
from pydantic import ValidationError

from dispatch_backend.app.core.exceptions import validation_details
from dispatch_backend.app.models.enums import UserRole
from dispatch_backend.app.schemas.auth import CreateUserProfile
from dispatch_backend.app.schemas.driver import LocationPing
from dispatch_backend.app.schemas.trip import AssignTrip, CreateTrip, UpdateTripStatus


class TestLocationPing:

    def test_accepts_valid_ping(self):
        ping = LocationPing.model_validate(
            {"lat": 40.7128, "lng": -74.006, "speedMps": 15.5, "heading": 270}
        )
        assert ping.speed_mps == 15.5
        assert ping.heading == 270

    def test_defaults_speed_and_heading_to_zero(self):
        ping = LocationPing.model_validate({"lat": 0, "lng": 0})
        assert ping.speed_mps == 0
        assert ping.heading == 0
        assert ping.timestamp is None

    @pytest.mark.parametrize("payload", [
        {"lat": 91, "lng": 0},
        {"lat": -90.5, "lng": 0},
        {"lat": 0, "lng": 181},
        {"lat": 0, "lng": -200},
        {"lat": 0, "lng": 0, "speedMps": -1},
        {"lat": 0, "lng": 0, "heading": 360.5},
        {"lng": 0},
    ])
    def test_rejects_out_of_range_values(self, payload):
        with pytest.raises(ValidationError):
            LocationPing.model_validate(payload)

    def test_accepts_boundary_values(self):
        ping = LocationPing.model_validate({"lat": -90, "lng": 180, "heading": 360})
        assert ping.lat == -90
        assert ping.heading == 360

    @pytest.mark.parametrize("payload, path", [
        ({"lat": "45", "lng": 0}, ("lat",)),
        ({"lat": 0, "lng": True}, ("lng",)),
        ({"lat": 0, "lng": 0, "speedMps": "3"}, ("speedMps",)),
    ])
    def test_rejects_strings_and_booleans(self, payload, path):
        with pytest.raises(ValidationError) as exc_info:
            LocationPing.model_validate(payload)

        assert [e["loc"] for e in exc_info.value.errors()] == [path]


class TestCreateTrip:

    def test_accepts_trip_with_stops(self):
        trip = CreateTrip.model_validate({"stops": [
            {"address": "123 Main St", "lat": 40.7, "lng": -74.0, "sequence": 0},
            {"address": "456 Oak Ave", "lat": 40.8, "lng": -73.9, "sequence": 1},
        ]})
        assert len(trip.stops) == 2

    def test_coordinates_are_optional(self):
        trip = CreateTrip.model_validate({"stops": [{"address": "City Hall", "sequence": 0}]})
        assert trip.stops[0].lat is None
        assert trip.stops[0].lng is None

    @pytest.mark.parametrize("stop, field", [
        ({"address": "A", "lat": "40.7", "lng": 0, "sequence": 0}, "lat"),
        ({"address": "A", "lat": 0, "lng": False, "sequence": 0}, "lng"),
        ({"address": "A", "sequence": "2"}, "sequence"),
    ])
    def test_stop_rejects_strings_and_booleans(self, stop, field):
        with pytest.raises(ValidationError) as exc_info:
            CreateTrip.model_validate({"stops": [stop]})

        assert [e["loc"] for e in exc_info.value.errors()] == [("stops", 0, field)]

    def test_defaults_notes_to_empty_string(self):
        trip = CreateTrip.model_validate({"stops": [{"address": "Test", "sequence": 0}]})
        assert trip.stops[0].notes == ""

    def test_rejects_empty_stops(self):
        with pytest.raises(ValidationError):
            CreateTrip.model_validate({"stops": []})

    def test_rejects_stop_without_address(self):
        with pytest.raises(ValidationError):
            CreateTrip.model_validate({"stops": [{"lat": 40.7, "lng": -74.0, "sequence": 0}]})

    def test_rejects_negative_sequence(self):
        with pytest.raises(ValidationError):
            CreateTrip.model_validate({"stops": [{"address": "A", "sequence": -1}]})


class TestAssignAndStatus:

    def test_assign_requires_driver_id(self):
        assert AssignTrip.model_validate({"driverId": "abc123"}).driver_id == "abc123"
        with pytest.raises(ValidationError):
            AssignTrip.model_validate({"driverId": ""})
        with pytest.raises(ValidationError):
            AssignTrip.model_validate({})

    @pytest.mark.parametrize("status", ["in_progress", "completed"])
    def test_status_accepts_forward_states(self, status):
        assert UpdateTripStatus.model_validate({"status": status}).status == status

    @pytest.mark.parametrize("status", ["draft", "assigned", "cancelled"])
    def test_status_rejects_other_values(self, status):
        with pytest.raises(ValidationError):
            UpdateTripStatus.model_validate({"status": status})


class TestCreateUserProfile:

    def test_defaults_role_to_driver(self):
        assert CreateUserProfile.model_validate({"name": "Jane"}).role == UserRole.DRIVER

    def test_accepts_dispatcher(self):
        profile = CreateUserProfile.model_validate({"name": "John", "role": "dispatcher"})
        assert profile.role == UserRole.DISPATCHER

    @pytest.mark.parametrize("payload", [
        {"name": ""},
        {"name": "x" * 101},
        {"name": "Test", "role": "superadmin"},
    ])
    def test_rejects_invalid_profiles(self, payload):
        with pytest.raises(ValidationError):
            CreateUserProfile.model_validate(payload)


class TestValidationDetails:

    def test_nested_path_is_dotted(self):
        with pytest.raises(ValidationError) as exc_info:
            CreateTrip.model_validate({"stops": [{"address": "", "sequence": 0}]})

        details = validation_details(exc_info.value.errors())
        assert details[0]["path"] == "stops.0.address"
        assert details[0]["message"]

    def test_request_location_prefix_is_stripped(self):
        details = validation_details([
            {"loc": ("body", "lat"), "msg": "Input should be less than or equal to 90"},
            {"loc": ("query", "limit"), "msg": "Input should be greater than or equal to 1"},
        ])
        assert details == [
            {"path": "lat", "message": "Input should be less than or equal to 90"},
            {"path": "limit", "message": "Input should be greater than or equal to 1"},
        ]
