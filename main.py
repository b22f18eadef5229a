# main.py
import argparse
import json
import sys

from geo_assign.app.build import build
from geo_assign.config.models import ScenarioModel
from geo_assign.io.config import load_scenario
from geo_assign.io.inputs import load_points
from geo_assign.io.recorder import JsonlSink
from geo_assign.io.run_logging import default_json_logger


def run(scenario_path: str | None, points_path: str, straight: bool = False) -> dict:
    cfg = load_scenario(scenario_path) if scenario_path else ScenarioModel()
    # stdout carries only the result document; logs and events go to stderr
    app = build(
        cfg,
        sinks=[JsonlSink(sys.stderr)],
        logger=default_json_logger(level=cfg.log.level, stream=sys.stderr),
    )
    individuals, facilities = load_points(points_path)
    _, stats = app.run(individuals, facilities, distance_mode="straight" if straight else None)
    return {"statistics": stats.as_dict(), "oracle": app.oracle.stats()}


def main(argv=None) -> None:
    ap = argparse.ArgumentParser(description="Priority assignment of individuals to facilities")
    ap.add_argument("points", help="JSON file of {latitude, longitude, category} records")
    ap.add_argument("--scenario", help="scenario config (JSON)")
    ap.add_argument("--straight", action="store_true", help="use straight-line distances only")
    args = ap.parse_args(argv)
    print(json.dumps(run(args.scenario, args.points, straight=args.straight), indent=2))


if __name__ == "__main__":
    main()
