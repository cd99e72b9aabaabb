"""
Configuration and constants for the Garmin workout creator.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Dev mode - dump step summaries and full payloads to the log
DEV_MODE = os.getenv("DEV_MODE", "false").lower() == "true"

CONFIG_DIR = Path(os.getenv(
    "GARMIN_WORKOUTS_CONFIG_DIR",
    os.path.join(os.path.expanduser("~"), ".config", "garmin-workouts-mcp"),
))
AUTH_FILE = Path(os.getenv("GARMIN_WORKOUTS_AUTH_FILE", str(CONFIG_DIR / "auth.json")))

# Optional JSON dump of input steps and the generated payload, for inspection
DEBUG_FILE = os.getenv("GARMIN_WORKOUTS_DEBUG_FILE") or None

# Login flow
LOGIN_TIMEOUT_SEC = int(os.getenv("LOGIN_TIMEOUT_SEC", "300"))
TOKEN_EXPIRY_BUFFER_SEC = 30
RELOAD_SETTLE_SEC = 3

GARMIN_DOMAIN = "garmin.com"
CONNECT_URL = "https://connect.garmin.com"
WORKOUTS_PAGE_URL = f"{CONNECT_URL}/modern/workouts"
SSO_HOST = "sso.garmin.com"
AUTHENTICATED_PAGE_SELECTOR = 'select[name="select-workout"]'

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-blink-features=AutomationControlled",
    "--disable-features=VizDisplayCompositor",
]
BROWSER_VIEWPORT = {"width": 1366, "height": 768}
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/136.0.0.0 Safari/537.36"
)

# Workout API
WORKOUT_ENDPOINT = "/workout-service/workout"
WORKOUT_VIEW_URL = CONNECT_URL + "/modern/workout/{workout_id}"
WORKOUT_CREATE_REFERER = CONNECT_URL + "/modern/workout/create/{sport}"
API_BACKEND = "connectapi.garmin.com"
APP_VERSION = "5.14.1.2"
REQUEST_TIMEOUT_SEC = int(os.getenv("REQUEST_TIMEOUT_SEC", "30"))
