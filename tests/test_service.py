"""
Tests for the caller-facing operations and the LangChain tool surface,
using an in-memory store, a canned acquirer and a fake adapter.
"""
import asyncio
import json
import time

from garmin_workouts.auth import CredentialAcquirer, CredentialManager
from garmin_workouts import build_tools
from garmin_workouts.models import (
    AcquisitionFailure,
    AcquisitionFailureReason,
    Credential,
    SubmissionFailure,
    SubmissionFailureReason,
    WorkoutCreated,
)
from garmin_workouts.service import GarminWorkoutService
from garmin_workouts.store import MemoryCredentialStore

STEPS = [
    {"name": "Warm-up", "duration": "10:00", "target": "Zone 2", "intensity": "warmup"},
    {"name": "Interval 1", "duration": "1.0 km", "target": "Zone 4", "intensity": "active"},
    {"name": "Recovery 1", "duration": "2:00", "target": "Open", "intensity": "rest"},
    {"name": "Cool-down", "duration": "10:00", "target": "Zone 2", "intensity": "cooldown"},
]


def valid_credential(token="Bearer valid"):
    now = int(time.time() * 1000)
    return Credential(auth_token=token, cookies="a=1", issued_at=now, expires_at=now + 3_600_000)


class CannedAcquirer(CredentialAcquirer):
    def __init__(self, result):
        self.result = result

    async def acquire(self):
        return self.result


class FakeAdapter:
    def __init__(self, result):
        self.result = result
        self.submissions = []

    def submit(self, payload, credential):
        self.submissions.append((payload, credential))
        return self.result


class TestGarminWorkoutService:

    def setup_method(self):
        self.store = MemoryCredentialStore()
        self.adapter = FakeAdapter(WorkoutCreated(
            workout_id="12345",
            name="4x1km",
            url="https://connect.garmin.com/modern/workout/12345",
        ))

    def make_service(self, acquired=None, debug_file=None):
        manager = CredentialManager(
            store=self.store,
            acquirer=CannedAcquirer(acquired or valid_credential("Bearer fresh")),
        )
        return GarminWorkoutService(manager=manager, adapter=self.adapter, debug_file=debug_file)

    def test_check_auth_without_credential(self):
        assert "No valid Garmin authentication" in self.make_service().check_auth()

    def test_check_auth_with_credential(self):
        self.store.write(valid_credential())
        message = self.make_service().check_auth()
        assert "valid" in message
        assert "Token expires" in message

    def test_authenticate_stores_credential(self):
        service = self.make_service()

        message = asyncio.run(service.authenticate())

        assert "Successfully authenticated" in message
        assert self.store.read().auth_token == "Bearer fresh"

    def test_authenticate_reports_failure(self):
        failure = AcquisitionFailure(reason=AcquisitionFailureReason.TIMEOUT, detail="Login was not completed")
        service = self.make_service(acquired=failure)

        message = asyncio.run(service.authenticate())

        assert "Authentication failed" in message
        assert "timeout" in message
        assert self.store.read() is None

    def test_authenticate_with_undecodable_token(self):
        broken = Credential(auth_token="Bearer ???", cookies="a=1", issued_at=0, expires_at=0)
        service = self.make_service(acquired=broken)

        message = asyncio.run(service.authenticate())

        assert "no usable expiry" in message
        assert service.check_auth().startswith("❌")

    def test_create_requires_authentication(self):
        message = self.make_service().create_workout("4x1km", "running", STEPS)

        assert "Authentication required" in message
        assert self.adapter.submissions == []

    def test_create_workout(self):
        credential = valid_credential()
        self.store.write(credential)

        message = self.make_service().create_workout("4x1km", "running", STEPS)

        assert "Workout created successfully" in message
        assert "12345" in message
        assert "https://connect.garmin.com/modern/workout/12345" in message

        payload, used_credential = self.adapter.submissions[0]
        assert used_credential == credential
        assert payload["workoutName"] == "4x1km"
        assert len(payload["workoutSegments"][0]["workoutSteps"]) == 4

    def test_expired_auth_clears_credential(self):
        self.store.write(valid_credential())
        self.adapter.result = SubmissionFailure(reason=SubmissionFailureReason.AUTH_EXPIRED, detail="401")

        message = self.make_service().create_workout("4x1km", "running", STEPS)

        assert "authenticate_garmin" in message
        assert self.store.read() is None
        assert len(self.adapter.submissions) == 1

    def test_http_error_is_reported_and_credential_kept(self):
        self.store.write(valid_credential())
        self.adapter.result = SubmissionFailure(
            reason=SubmissionFailureReason.HTTP_ERROR,
            detail='400 {"message": "Invalid step"}',
        )

        message = self.make_service().create_workout("4x1km", "running", STEPS)

        assert "Failed to create workout" in message
        assert "Invalid step" in message
        assert self.store.read() is not None
        assert len(self.adapter.submissions) == 1

    def test_invalid_steps_are_reported(self):
        self.store.write(valid_credential())

        message = self.make_service().create_workout("Bad", "running", [{"duration": "10:00"}])

        assert "Invalid workout" in message
        assert self.adapter.submissions == []

    def test_debug_file(self, tmp_path):
        self.store.write(valid_credential())
        debug_file = tmp_path / "garmin-debug.json"

        self.make_service(debug_file=str(debug_file)).create_workout("4x1km", "running", STEPS)

        debug_info = json.loads(debug_file.read_text())
        assert debug_info["workoutName"] == "4x1km"
        assert len(debug_info["inputSteps"]) == 4
        assert debug_info["outputSteps"] == debug_info["fullPayload"]["workoutSegments"][0]["workoutSteps"]

    def test_logout(self):
        self.store.write(valid_credential())
        service = self.make_service()

        service.logout()

        assert self.store.read() is None


class TestLlmTools:

    def setup_method(self):
        self.store = MemoryCredentialStore()
        self.adapter = FakeAdapter(WorkoutCreated(workout_id="7", name="Easy", url="https://connect.garmin.com/modern/workout/7"))
        manager = CredentialManager(store=self.store, acquirer=CannedAcquirer(valid_credential()))
        self.tools = {t.name: t for t in build_tools(GarminWorkoutService(manager=manager, adapter=self.adapter, debug_file=None))}

    def test_tool_names(self):
        assert set(self.tools) == {"check_garmin_auth", "authenticate_garmin", "create_garmin_workout"}

    def test_check_tool(self):
        assert "No valid Garmin authentication" in self.tools["check_garmin_auth"].invoke({})

    def test_authenticate_tool(self):
        message = asyncio.run(self.tools["authenticate_garmin"].ainvoke({}))
        assert "Successfully authenticated" in message
        assert self.store.read() is not None

    def test_create_tool(self):
        self.store.write(valid_credential())

        message = self.tools["create_garmin_workout"].invoke({
            "name": "Easy",
            "sport": "running",
            "steps": [{"name": "Run", "duration": "30:00", "target": "Zone 2", "intensity": "active"}],
        })

        assert "Workout created successfully" in message
        payload, _ = self.adapter.submissions[0]
        assert payload["workoutSegments"][0]["workoutSteps"][0]["zoneNumber"] == 2
