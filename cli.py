import argparse
import asyncio

from config import APP_VERSION
from client import WorkoutSessionClient
from db import (
    ExerciseCatalogRepository,
    WorkoutSessionRepository,
    ExerciseSessionRepository,
    SetSessionRepository,
)
from logging_config import configure_logging
from settings_schema import load_settings
from synchronizer import ActiveWorkoutController
from tools import MathTools


def demo_data(db_path: str) -> int | None:
    """Start a demo workout session if none is active; return its id."""
    sessions = WorkoutSessionRepository(db_path)
    if sessions.fetch_active() is not None:
        print("Database already contains an active workout session")
        return None
    catalog = ExerciseCatalogRepository(db_path)
    entries = ExerciseSessionRepository(db_path)
    sets = SetSessionRepository(db_path)
    sid = sessions.create("Demo session", "intermediate")
    for name, group, equipment, rest, count in [
        ("Bench Press", "Chest", "Barbell", 90, 3),
        ("Barbell Row", "Back", "Barbell", 60, 3),
    ]:
        ex_id = catalog.add(name, group, equipment, rest)
        es_id = entries.add(sid, ex_id)
        sets.bulk_add(es_id, count)
    print("Demo data inserted")
    return sid


async def show_progress(url: str, yaml_path: str) -> None:
    settings = load_settings(yaml_path)
    client = WorkoutSessionClient(url or settings.api_url, token=settings.api_token)
    controller = ActiveWorkoutController(client, settings)
    session = await controller.load()
    if session is None:
        for notice in controller.notices:
            print(f"{notice.title}: {notice.description}")
        controller.close()
        return
    await controller.fetch_last_session_stats()
    print(f"Session {session.id} ({session.workout_mode.value}) - {controller.progress}% done")
    print(f"Elapsed: {MathTools.format_time(controller.elapsed_seconds())}")
    for entry in session.exercises:
        summary = controller.exercise_summary(entry.id)
        print(
            f"  {entry.exercise.name}: volume {summary['volume']:.1f} kg, "
            f"best est. 1RM {summary['best_1rm']:.1f} kg"
        )
    controller.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Workout session utilities")
    parser.add_argument("--yaml", default="settings.yaml")
    parser.add_argument("--version", action="version", version=APP_VERSION)
    sub = parser.add_subparsers(dest="cmd", required=True)

    serve = sub.add_parser("serve")
    serve.add_argument("--db", default="workout.db")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    demo = sub.add_parser("demo")
    demo.add_argument("--db", default="workout.db")

    est = sub.add_parser("estimate")
    est.add_argument("--weight", type=float, required=True)
    est.add_argument("--reps", type=int, required=True)

    prog = sub.add_parser("progress")
    prog.add_argument("--url", default="")

    args = parser.parse_args()
    configure_logging(load_settings(args.yaml).log_level)

    if args.cmd == "serve":
        import uvicorn
        from rest_api import WorkoutSessionAPI

        api = WorkoutSessionAPI(db_path=args.db, yaml_path=args.yaml)
        uvicorn.run(api.app, host=args.host, port=args.port)
    elif args.cmd == "demo":
        demo_data(args.db)
    elif args.cmd == "estimate":
        est_1rm = MathTools.estimated_1rm(args.weight, args.reps)
        if est_1rm <= 0:
            print("No estimate for non-positive weight or reps")
        else:
            print(f"{args.weight} kg x {args.reps} = {est_1rm} kg estimated 1RM")
    elif args.cmd == "progress":
        asyncio.run(show_progress(args.url, args.yaml))


if __name__ == "__main__":
    main()
