"""
The three caller-facing operations: check authentication, authenticate,
create a workout. Each returns a short human-readable summary.
"""

import json
import logging
from typing import List, Optional, Union

from pydantic import ValidationError

from .adapter import GarminAdapter
from .auth import CredentialManager
from .config import DEBUG_FILE, DEV_MODE
from .models import (
    AcquisitionFailure,
    Credential,
    SubmissionFailureReason,
    WorkoutDescription,
    WorkoutStep,
)
from .workout_manager import WorkoutManager

logger = logging.getLogger(__name__)

NEEDS_AUTH_MESSAGE = (
    "❌ Authentication required. Please run the 'authenticate_garmin' tool "
    "to authenticate with Garmin Connect."
)


def _format_expiry(credential: Credential) -> str:
    return credential.expires_at_datetime.strftime("%Y-%m-%d %H:%M:%S")


class GarminWorkoutService:
    def __init__(
        self,
        manager: Optional[CredentialManager] = None,
        adapter: Optional[GarminAdapter] = None,
        workout_manager: Optional[WorkoutManager] = None,
        debug_file: Optional[str] = DEBUG_FILE,
    ):
        self.manager = manager or CredentialManager()
        self.adapter = adapter or GarminAdapter()
        self.workout_manager = workout_manager or WorkoutManager()
        self.debug_file = debug_file

    def check_auth(self) -> str:
        credential = self.manager.get_valid_credential()
        if credential:
            return (
                "✅ Garmin authentication is valid and ready to use.\n"
                f"Token expires: {_format_expiry(credential)}"
            )
        return (
            "❌ No valid Garmin authentication found. Please run the "
            "'authenticate_garmin' tool to authenticate."
        )

    async def authenticate(self) -> str:
        result = await self.manager.acquire_credential()
        if isinstance(result, AcquisitionFailure):
            return f"❌ Authentication failed ({result.reason.value}): {result.detail}"

        if not result.is_valid():
            return (
                "⚠️ Logged in, but the captured token has no usable expiry. "
                "Please try authenticating again."
            )

        return (
            "✅ Successfully authenticated with Garmin Connect! You can now create workouts.\n"
            f"Token expires: {_format_expiry(result)}"
        )

    def logout(self) -> str:
        self.manager.invalidate_credential()
        return "🗑️ Stored Garmin authentication cleared."

    def create_workout(self, name: str, sport: str, steps: List[Union[WorkoutStep, dict]]) -> str:
        credential = self.manager.get_valid_credential()
        if not credential:
            return NEEDS_AUTH_MESSAGE

        try:
            workout = WorkoutDescription(name=name, sport=sport or "running", steps=steps)
        except ValidationError as e:
            return f"❌ Invalid workout: {e}"

        payload = self.workout_manager.build_payload(workout)

        logger.info(f"Creating workout: {workout.name}")
        if DEV_MODE:
            logger.info(f"Workout has {len(workout.steps)} steps:")
            for line in self.workout_manager.summarize_steps(workout):
                logger.info(f"  {line}")
            logger.info(f"Garmin JSON: {json.dumps(payload, indent=2)}")

        if self.debug_file:
            self._write_debug_file(workout, payload)

        result = self.adapter.submit(payload, credential)

        if result.ok:
            return (
                "✅ Workout created successfully!\n\n"
                f"**{result.name}** (ID: {result.workout_id})\n\n"
                f"🔗 **View in Garmin Connect:** {result.url}\n\n"
                "The workout is now available in your Garmin Connect account and ready to sync to your device."
            )

        if result.reason == SubmissionFailureReason.AUTH_EXPIRED:
            self.manager.invalidate_credential()
            return (
                "❌ Garmin rejected the stored authentication (expired). It has been cleared; "
                "please run the 'authenticate_garmin' tool and try again."
            )

        # Other failures are not retried: the workout may already exist
        return f"❌ Failed to create workout ({result.reason.value}): {result.detail}"

    def _write_debug_file(self, workout: WorkoutDescription, payload: dict) -> None:
        debug_info = {
            "workoutName": workout.name,
            "inputSteps": [step.model_dump() for step in workout.steps],
            "outputSteps": payload["workoutSegments"][0]["workoutSteps"],
            "fullPayload": payload,
        }
        try:
            with open(self.debug_file, "w") as f:
                json.dump(debug_info, f, indent=2)
            logger.info(f"Debug info written to {self.debug_file}")
        except OSError as e:
            logger.warning(f"Failed to write debug file: {e}")
