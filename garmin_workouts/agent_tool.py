import argparse
import asyncio
import json
import logging
import sys

from pydantic import ValidationError

from .models import WorkoutDescription
from .service import GarminWorkoutService
from .workout_manager import WorkoutManager


def show_status(service, args):
    print(service.check_auth())


def login(service, args):
    print("Opening Garmin Connect in a browser window. Please log in there.")
    print(asyncio.run(service.authenticate()))


def logout(service, args):
    print(service.logout())


def create_workout(service, args):
    try:
        with open(args.file, "r") as f:
            workout = WorkoutDescription.model_validate(json.load(f))
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        print(f"Error: could not read workout from {args.file}: {e}")
        sys.exit(1)

    print("\n" + "=" * 50)
    print(f"{workout.name} ({workout.sport})")
    print("=" * 50)
    for line in WorkoutManager().summarize_steps(workout):
        print(f" {line}")

    if not args.yes:
        confirm = input("\nUpload this workout to Garmin Connect? [y/N]: ").strip().lower()
        if confirm != 'y':
            print("Cancelled.")
            return

    print(service.create_workout(workout.name, workout.sport, workout.steps))


def main(argv=None):
    parser = argparse.ArgumentParser(description="Create Garmin Connect workouts")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("status", help="Check the stored Garmin authentication")
    subparsers.add_parser("login", help="Authenticate in a browser window")
    subparsers.add_parser("logout", help="Forget the stored authentication")

    parser_create = subparsers.add_parser("create", help="Create a workout from a JSON file")
    parser_create.add_argument("file", help="Workout JSON: {name, sport, steps: [...]}")
    parser_create.add_argument("-y", "--yes", action="store_true", help="Skip confirmation")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    commands = {
        "status": show_status,
        "login": login,
        "logout": logout,
        "create": create_workout,
    }
    if args.command not in commands:
        parser.print_help()
        return

    commands[args.command](GarminWorkoutService(), args)


if __name__ == "__main__":
    main()
