"""
LangChain tools exposing the workout service to an LLM agent.

The model turns the user's free-text workout into the structured steps
below; nothing here parses natural language.
"""

from typing import List

from langchain.tools import tool

from .models import WorkoutStep
from .service import GarminWorkoutService


def build_tools(service: GarminWorkoutService) -> list:
    """Create the Garmin tools bound to one service instance."""

    @tool
    def check_garmin_auth() -> str:
        """
        Check if Garmin authentication is valid.

        Returns:
            Status message, including the token expiry time when valid.
        """
        return service.check_auth()

    @tool
    async def authenticate_garmin() -> str:
        """
        Authenticate with Garmin Connect (opens a browser window).

        The user has to log in by hand; this waits up to 5 minutes.
        Call it when check_garmin_auth or create_garmin_workout reports
        that authentication is required or expired.
        """
        return await service.authenticate()

    @tool
    def create_garmin_workout(name: str, steps: List[WorkoutStep], sport: str = "running") -> str:
        """
        Create a workout in Garmin Connect from structured workout data.
        Parse the user's description yourself and pass the steps in order.

        STEP FORMAT:
        - duration: "MM:SS" (e.g. "10:00"), "HH:MM:SS", a distance ("1.5 km", "400 m") or "Open"
        - target: "Zone 1" recovery/easy, "Zone 2" aerobic/base, "Zone 3" tempo,
          "Zone 4" threshold, "Zone 5" VO2 max/all-out, "<n> BPM", a pace "4:30/km",
          or "Open" only when no target is mentioned.
          Default warmup and cooldown steps to "Zone 2" unless the user asks otherwise.
        - intensity: warmup, active, rest or cooldown

        EXAMPLE - 4x1km intervals:
        name="4x1km", sport="running", steps=[
          {"name": "Warm-up", "duration": "10:00", "target": "Zone 2", "intensity": "warmup"},
          {"name": "Interval 1", "duration": "1.0 km", "target": "Zone 4", "intensity": "active"},
          {"name": "Recovery 1", "duration": "2:00", "target": "Open", "intensity": "rest"},
          ...
          {"name": "Cool-down", "duration": "10:00", "target": "Zone 2", "intensity": "cooldown"}
        ]

        Args:
            name: Name of the workout
            steps: Ordered workout steps
            sport: running, cycling or swimming (defaults to running)

        Returns:
            Link to the created workout, or the reason it failed
        """
        return service.create_workout(name, sport, steps)

    return [check_garmin_auth, authenticate_garmin, create_garmin_workout]
