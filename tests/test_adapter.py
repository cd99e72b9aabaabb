"""
Tests for workout submission and response interpretation.
The garth client is replaced by a fake; no network traffic.
"""
import json

import pytest
import requests
from garth.exc import GarthHTTPError

from garmin_workouts.adapter import GarminAdapter
from garmin_workouts.models import Credential, SubmissionFailureReason
from garmin_workouts.models import WorkoutDescription, WorkoutStep
from garmin_workouts.workout_manager import WorkoutManager


def make_response(status_code, body):
    response = requests.Response()
    response.status_code = status_code
    response._content = body.encode() if isinstance(body, str) else json.dumps(body).encode()
    response.url = "https://connect.garmin.com/workout-service/workout"
    return response


def http_error(status_code, body):
    response = make_response(status_code, body)
    return GarthHTTPError(msg="Error in request", error=requests.HTTPError(response=response))


class FakeClient:
    """Records calls the way garth.Client.post is used."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, subdomain, path, **kwargs):
        self.calls.append({"subdomain": subdomain, "path": path, **kwargs})
        if self.error:
            raise self.error
        return self.response


class TestSubmit:

    def setup_method(self):
        self.credential = Credential(
            auth_token="Bearer token123",
            cookies="SESSIONID=abc",
            issued_at=0,
            expires_at=0,
        )
        workout = WorkoutDescription(
            name="X",
            sport="cycling",
            steps=[WorkoutStep(name="Ride", duration="30:00", target="Zone 2", intensity="active")],
        )
        self.payload = WorkoutManager().build_payload(workout)

    def test_success(self):
        client = FakeClient(response=make_response(200, {"workoutId": 12345, "workoutName": "X"}))

        result = GarminAdapter(client).submit(self.payload, self.credential)

        assert result.ok
        assert result.workout_id == "12345"
        assert result.name == "X"
        assert "12345" in result.url
        assert result.url == "https://connect.garmin.com/modern/workout/12345"

    def test_request_shape(self):
        client = FakeClient(response=make_response(200, {"workoutId": 1, "workoutName": "X"}))

        GarminAdapter(client).submit(self.payload, self.credential)

        assert len(client.calls) == 1
        call = client.calls[0]
        assert call["subdomain"] == "connect"
        assert call["path"] == "/workout-service/workout"
        assert call["json"] == self.payload

        headers = call["headers"]
        assert headers["authorization"] == "Bearer token123"
        assert headers["cookie"] == "SESSIONID=abc"
        assert headers["referer"] == "https://connect.garmin.com/modern/workout/create/cycling"
        assert headers["origin"] == "https://connect.garmin.com"
        assert headers["di-backend"] == "connectapi.garmin.com"
        assert headers["content-type"].startswith("application/json")
        assert "Mozilla" in headers["user-agent"]

    def test_unauthorized_is_auth_expired_without_retry(self):
        client = FakeClient(error=http_error(401, "Unauthorized"))

        result = GarminAdapter(client).submit(self.payload, self.credential)

        assert not result.ok
        assert result.reason == SubmissionFailureReason.AUTH_EXPIRED
        assert len(client.calls) == 1

    @pytest.mark.parametrize("status", [400, 403, 404, 500, 503])
    def test_other_status_is_http_error(self, status):
        client = FakeClient(error=http_error(status, '{"message": "bad workout"}'))

        result = GarminAdapter(client).submit(self.payload, self.credential)

        assert result.reason == SubmissionFailureReason.HTTP_ERROR
        assert str(status) in result.detail
        assert "bad workout" in result.detail
        assert len(client.calls) == 1

    def test_connection_error_is_network_error(self):
        client = FakeClient(error=requests.ConnectionError("Failed to resolve 'connect.garmin.com'"))

        result = GarminAdapter(client).submit(self.payload, self.credential)

        assert result.reason == SubmissionFailureReason.NETWORK_ERROR
        assert "Failed to resolve" in result.detail
        assert len(client.calls) == 1

    def test_timeout_is_network_error(self):
        client = FakeClient(error=requests.Timeout("Read timed out."))

        result = GarminAdapter(client).submit(self.payload, self.credential)

        assert result.reason == SubmissionFailureReason.NETWORK_ERROR
        assert len(client.calls) == 1

    def test_unreadable_success_body_is_http_error(self):
        client = FakeClient(response=make_response(200, "<html>oops</html>"))

        result = GarminAdapter(client).submit(self.payload, self.credential)

        assert result.reason == SubmissionFailureReason.HTTP_ERROR
        assert "200" in result.detail
