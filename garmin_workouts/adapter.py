import logging
from typing import Dict, Optional

import requests
from garth import Client
from garth.exc import GarthHTTPError

from .config import (
    API_BACKEND,
    APP_VERSION,
    BROWSER_USER_AGENT,
    CONNECT_URL,
    GARMIN_DOMAIN,
    REQUEST_TIMEOUT_SEC,
    WORKOUT_CREATE_REFERER,
    WORKOUT_ENDPOINT,
    WORKOUT_VIEW_URL,
)
from .models import (
    Credential,
    SubmissionFailure,
    SubmissionFailureReason,
    SubmissionResult,
    WorkoutCreated,
)

logger = logging.getLogger(__name__)


def workout_url(workout_id) -> str:
    return WORKOUT_VIEW_URL.format(workout_id=workout_id)


class GarminAdapter:
    """
    Talks to the Garmin Connect workout service with a browser-issued
    credential, presenting itself as the Connect web client.

    Workout creation is not idempotent, so requests are never retried here.
    """

    def __init__(self, client: Optional[Client] = None):
        if client is None:
            client = Client()
            client.configure(domain=GARMIN_DOMAIN, timeout=REQUEST_TIMEOUT_SEC, retries=0)
        self.client = client

    def build_headers(self, credential: Credential, sport: str) -> Dict[str, str]:
        return {
            "accept": "application/json, text/plain, */*",
            "accept-language": "en-GB,en-US;q=0.9,en;q=0.8",
            "authorization": credential.auth_token,
            "content-type": "application/json;charset=UTF-8",
            "cookie": credential.cookies,
            "di-backend": API_BACKEND,
            "nk": "NT",
            "origin": CONNECT_URL,
            "referer": WORKOUT_CREATE_REFERER.format(sport=sport),
            "user-agent": BROWSER_USER_AGENT,
            "x-app-ver": APP_VERSION,
            "x-lang": "en-US",
        }

    def submit(self, payload: Dict, credential: Credential) -> SubmissionResult:
        """
        Create a workout in Garmin Connect.

        Returns WorkoutCreated on 2xx, otherwise a SubmissionFailure:
        auth-expired on 401 (the caller should drop the credential and
        re-authenticate), http-error on any other status, network-error
        when the request could not be completed.
        """
        sport = payload.get("sportType", {}).get("sportTypeKey") or "running"
        headers = self.build_headers(credential, sport)

        try:
            response = self.client.post("connect", WORKOUT_ENDPOINT, headers=headers, json=payload)
        except GarthHTTPError as e:
            return self._http_failure(e.error.response, str(e))
        except requests.RequestException as e:
            logger.error(f"Workout creation failed, network error: {e}")
            return SubmissionFailure(reason=SubmissionFailureReason.NETWORK_ERROR, detail=str(e))

        return self._parse_created(response)

    def _http_failure(self, response, message) -> SubmissionFailure:
        if response is None:
            logger.error(f"API error without response: {message}")
            return SubmissionFailure(reason=SubmissionFailureReason.HTTP_ERROR, detail=message)

        logger.error(f"API error: {response.status_code} {response.text}")

        if response.status_code == 401:
            return SubmissionFailure(
                reason=SubmissionFailureReason.AUTH_EXPIRED,
                detail="Authentication expired. Please re-authenticate with Garmin Connect.",
            )

        return SubmissionFailure(
            reason=SubmissionFailureReason.HTTP_ERROR,
            detail=f"{response.status_code} {response.text}".strip(),
        )

    def _parse_created(self, response) -> SubmissionResult:
        try:
            result = response.json()
            workout_id = str(result["workoutId"])
        except (ValueError, KeyError, TypeError):
            # The workout may exist server-side even though the body is unreadable
            logger.error(f"Unexpected response to workout creation: {response.status_code} {response.text}")
            return SubmissionFailure(
                reason=SubmissionFailureReason.HTTP_ERROR,
                detail=f"{response.status_code} unexpected response body: {response.text}",
            )

        name = result.get("workoutName") or ""
        logger.info(f"Workout created: {name} (ID: {workout_id})")
        return WorkoutCreated(workout_id=workout_id, name=name, url=workout_url(workout_id))
