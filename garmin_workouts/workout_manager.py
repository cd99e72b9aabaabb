import re
from typing import Dict, List, NamedTuple, Optional

from .models import WorkoutDescription, WorkoutStep

# Sport mappings
SPORT_TYPES = {
    "running": {"sportTypeId": 1, "sportTypeKey": "running", "displayOrder": 1},
    "cycling": {"sportTypeId": 2, "sportTypeKey": "cycling", "displayOrder": 2},
    "swimming": {"sportTypeId": 5, "sportTypeKey": "swimming", "displayOrder": 5},
}
DEFAULT_SPORT = "running"

# Step type mappings, keyed by step intensity
STEP_TYPES = {
    "warmup": {"stepTypeId": 1, "stepTypeKey": "warmup", "displayOrder": 1},
    "cooldown": {"stepTypeId": 2, "stepTypeKey": "cooldown", "displayOrder": 2},
    "active": {"stepTypeId": 3, "stepTypeKey": "interval", "displayOrder": 3},
    "rest": {"stepTypeId": 4, "stepTypeKey": "recovery", "displayOrder": 4},
}
DEFAULT_INTENSITY = "active"

# Condition type mappings
CONDITION_TYPES = {
    "LAP_BUTTON": {"conditionTypeId": 1, "conditionTypeKey": "lap.button", "displayOrder": 1, "displayable": True},
    "TIME": {"conditionTypeId": 2, "conditionTypeKey": "time", "displayOrder": 2, "displayable": True},
    "DISTANCE": {"conditionTypeId": 3, "conditionTypeKey": "distance", "displayOrder": 3, "displayable": True},
}

# Target type mappings
TARGET_TYPES = {
    "NONE": {"workoutTargetTypeId": 1, "workoutTargetTypeKey": "no.target", "displayOrder": 1},
    "HEART_RATE_BPM": {"workoutTargetTypeId": 2, "workoutTargetTypeKey": "heart.rate.bpm", "displayOrder": 2},
    "HEART_RATE_ZONE": {"workoutTargetTypeId": 4, "workoutTargetTypeKey": "heart.rate.zone", "displayOrder": 4},
    "SPEED": {"workoutTargetTypeId": 6, "workoutTargetTypeKey": "pace.zone", "displayOrder": 6},
}

# Unit definitions
UNITS = {
    "m": {"unitId": 1, "unitKey": "meter", "factor": 100.0},
    "km": {"unitId": 2, "unitKey": "kilometer", "factor": 100000.0},
}

# Lap-button steps have no real limit; Garmin still expects a value
LAP_BUTTON_VALUE = 1000.0

# The web client sends this with every new workout
AVG_TRAINING_SPEED = 3.0727914832080057

DISTANCE_RE = re.compile(r"^\s*(\d*\.?\d+)\s*(km|m)\s*$", re.IGNORECASE)
CLOCK_RE = re.compile(r"^\s*\d+(?:\s*:\s*\d+){1,2}\s*$")
ZONE_RE = re.compile(r"Zone\s+(\d+)", re.IGNORECASE)
BPM_RE = re.compile(r"(\d+)\s*BPM", re.IGNORECASE)
PACE_RE = re.compile(r"(\d+):(\d+)\s*/\s*km", re.IGNORECASE)


class ParsedDuration(NamedTuple):
    condition: Dict
    value: float
    unit: Optional[str] = None


class ParsedTarget(NamedTuple):
    target_type: Dict
    zone_number: Optional[int] = None
    bpm: Optional[int] = None
    pace_seconds: Optional[int] = None


class WorkoutManager:
    def __init__(self, pace_margin_sec=5):
        # +/- seconds per km around a pace target
        self.pace_margin_sec = pace_margin_sec

    def get_pace_window(self, pace_str, margin_sec=5):
        """
        Converts '4:30' (min/km) to Garmin's pace.zone format (m/s).
        Returns a tuple: (min_speed, max_speed) in meters/second.
        """
        mins, secs = map(int, pace_str.split(':'))
        total_sec = mins * 60 + secs

        slowest_sec = max(total_sec + margin_sec, 1)
        fastest_sec = max(total_sec - margin_sec, 1)

        min_speed = round(1000 / slowest_sec, 4)
        max_speed = round(1000 / fastest_sec, 4)

        return min_speed, max_speed

    def parse_duration(self, duration: Optional[str]) -> ParsedDuration:
        """
        Parse a step duration into a Garmin end condition.

        "Open" and anything unrecognised become a lap-button step.
        Distances are normalised to meters, clock times to seconds.
        """
        lap_button = ParsedDuration(CONDITION_TYPES["LAP_BUTTON"], LAP_BUTTON_VALUE)
        text = (duration or "").strip()

        if not text or text.lower() == "open":
            return lap_button

        distance_match = DISTANCE_RE.match(text)
        if distance_match:
            value = float(distance_match.group(1))
            unit = distance_match.group(2).lower()
            meters = value * 1000 if unit == "km" else value
            return ParsedDuration(CONDITION_TYPES["DISTANCE"], float(meters), unit)

        if CLOCK_RE.match(text):
            parts = [int(p) for p in text.split(":")]
            if len(parts) == 2:
                seconds = parts[0] * 60 + parts[1]
            else:
                seconds = parts[0] * 3600 + parts[1] * 60 + parts[2]
            return ParsedDuration(CONDITION_TYPES["TIME"], float(seconds))

        return lap_button

    def parse_target(self, target: Optional[str]) -> ParsedTarget:
        """
        Parse a step target. First match wins: zone, then BPM, then pace.
        """
        text = (target or "").strip()

        if not text or text.lower() == "open":
            return ParsedTarget(TARGET_TYPES["NONE"])

        zone_match = ZONE_RE.search(text)
        if zone_match:
            return ParsedTarget(TARGET_TYPES["HEART_RATE_ZONE"], zone_number=int(zone_match.group(1)))

        bpm_match = BPM_RE.search(text)
        if bpm_match:
            # The BPM value itself is not sent; see DESIGN.md
            return ParsedTarget(TARGET_TYPES["HEART_RATE_BPM"], bpm=int(bpm_match.group(1)))

        pace_match = PACE_RE.search(text)
        if pace_match:
            pace_seconds = int(pace_match.group(1)) * 60 + int(pace_match.group(2))
            return ParsedTarget(TARGET_TYPES["SPEED"], pace_seconds=pace_seconds)

        return ParsedTarget(TARGET_TYPES["NONE"])

    def sport_type(self, sport: Optional[str]) -> Dict:
        key = (sport or "").strip().lower()
        return dict(SPORT_TYPES.get(key, SPORT_TYPES[DEFAULT_SPORT]))

    def step_type(self, intensity: Optional[str]) -> Dict:
        key = (intensity or "").strip().lower()
        return dict(STEP_TYPES.get(key, STEP_TYPES[DEFAULT_INTENSITY]))

    def convert_step(self, step: WorkoutStep, step_order: int) -> Dict:
        """Convert a single step to Garmin format."""
        duration = self.parse_duration(step.duration)
        target = self.parse_target(step.target)

        result = {
            "stepId": step_order,
            "stepOrder": step_order,
            "stepType": self.step_type(step.intensity),
            "type": "ExecutableStepDTO",
            "endCondition": dict(duration.condition),
            "endConditionValue": duration.value,
            "targetType": dict(target.target_type),
        }

        if duration.unit:
            result["preferredEndConditionUnit"] = dict(UNITS[duration.unit])

        if target.zone_number is not None:
            result["zoneNumber"] = target.zone_number

        if target.pace_seconds is not None:
            pace_str = f"{target.pace_seconds // 60}:{target.pace_seconds % 60:02d}"
            min_speed, max_speed = self.get_pace_window(pace_str, self.pace_margin_sec)
            result["targetValueOne"] = min_speed
            result["targetValueTwo"] = max_speed

        return result

    def build_payload(self, workout: WorkoutDescription) -> Dict:
        """
        Converts a structured workout to the Garmin workout-service format.
        Pure: the same description always gives the same payload.
        """
        sport_type = self.sport_type(workout.sport)

        workout_steps = [
            self.convert_step(step, idx)
            for idx, step in enumerate(workout.steps, start=1)
        ]

        return {
            "sportType": sport_type,
            "subSportType": None,
            "workoutName": workout.name,
            "estimatedDistanceUnit": {"unitKey": None},
            "workoutSegments": [
                {
                    "segmentOrder": 1,
                    "sportType": dict(sport_type),
                    "workoutSteps": workout_steps,
                }
            ],
            "avgTrainingSpeed": AVG_TRAINING_SPEED,
            "estimatedDurationInSecs": 0,
            "estimatedDistanceInMeters": 0,
            "estimateType": None,
            "isWheelchair": False,
        }

    def summarize_steps(self, workout: WorkoutDescription) -> List[str]:
        return [
            f"{idx}. {step.name}: {step.duration} at {step.target} ({step.intensity})"
            for idx, step in enumerate(workout.steps, start=1)
        ]


def build_payload(workout: WorkoutDescription) -> Dict:
    return WorkoutManager().build_payload(workout)


def parse_duration(duration: Optional[str]) -> ParsedDuration:
    return WorkoutManager().parse_duration(duration)


def parse_target(target: Optional[str]) -> ParsedTarget:
    return WorkoutManager().parse_target(target)

