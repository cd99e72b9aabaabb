"""
Garmin Connect workout creation.
Turns structured workouts into Garmin workout-service payloads and submits
them with a credential captured from an interactive browser login.
"""

from .adapter import GarminAdapter
from .auth import BrowserCredentialAcquirer, CredentialAcquirer, CredentialManager
from .llm_tools import build_tools
from .models import (
    AcquisitionFailure,
    AcquisitionFailureReason,
    Credential,
    SubmissionFailure,
    SubmissionFailureReason,
    WorkoutCreated,
    WorkoutDescription,
    WorkoutStep,
)
from .service import GarminWorkoutService
from .store import CredentialStore, FileCredentialStore, MemoryCredentialStore
from .workout_manager import WorkoutManager, build_payload, parse_duration, parse_target

__all__ = [
    'AcquisitionFailure', 'AcquisitionFailureReason', 'BrowserCredentialAcquirer',
    'Credential', 'CredentialAcquirer', 'CredentialManager', 'CredentialStore',
    'FileCredentialStore', 'GarminAdapter', 'GarminWorkoutService', 'MemoryCredentialStore',
    'SubmissionFailure', 'SubmissionFailureReason', 'WorkoutCreated', 'WorkoutDescription',
    'WorkoutManager', 'WorkoutStep', 'build_payload', 'build_tools', 'parse_duration', 'parse_target',
]
