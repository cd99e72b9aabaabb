"""
Data model shared by the credential manager, the workout translator and the
tool surface.
"""

import time
from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .config import TOKEN_EXPIRY_BUFFER_SEC


def now_ms() -> int:
    return int(time.time() * 1000)


class Credential(BaseModel):
    """
    Authenticated Garmin Connect web session.

    auth_token is the full authorization header value captured from the
    browser ("Bearer <jwt>"). Timestamps are epoch milliseconds taken from
    the token's own iat/exp claims.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    auth_token: str = Field(alias="authToken")
    cookies: str
    issued_at: int = Field(default=0, alias="issuedAt")
    expires_at: int = Field(default=0, alias="expiresAt")

    def is_valid(self, now: Optional[int] = None) -> bool:
        """True if the token is still good for at least the expiry buffer."""
        if now is None:
            now = now_ms()
        return now + TOKEN_EXPIRY_BUFFER_SEC * 1000 < self.expires_at

    @property
    def expires_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.expires_at / 1000)


class WorkoutStep(BaseModel):
    name: str = Field(description="Step name, e.g. 'Warm-up', 'Sprint 1', 'Recovery 1'")
    duration: str = Field(
        description="'Open', 'MM:SS', 'HH:MM:SS' or a distance such as '1.5 km' / '400 m'"
    )
    target: str = Field(
        default="Open",
        description="'Open', 'Zone <n>', '<n> BPM' or a pace such as '4:30/km'",
    )
    intensity: str = Field(
        default="active",
        description="One of: warmup, active, rest, cooldown",
    )
    notes: Optional[str] = None


class WorkoutDescription(BaseModel):
    name: str
    sport: str = Field(default="running", description="One of: running, cycling, swimming")
    steps: List[WorkoutStep] = Field(default_factory=list)


class SubmissionFailureReason(str, Enum):
    AUTH_EXPIRED = "auth-expired"
    HTTP_ERROR = "http-error"
    NETWORK_ERROR = "network-error"


class WorkoutCreated(BaseModel):
    workout_id: str
    name: str
    url: str

    @property
    def ok(self) -> bool:
        return True


class SubmissionFailure(BaseModel):
    reason: SubmissionFailureReason
    detail: str = ""

    @property
    def ok(self) -> bool:
        return False


SubmissionResult = Union[WorkoutCreated, SubmissionFailure]


class AcquisitionFailureReason(str, Enum):
    TIMEOUT = "timeout"
    NO_TOKEN = "no-token"
    BROWSER_ERROR = "browser-error"
    IO_ERROR = "io-error"


class AcquisitionFailure(BaseModel):
    reason: AcquisitionFailureReason
    detail: str = ""

    @property
    def ok(self) -> bool:
        return False
