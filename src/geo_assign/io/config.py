# src/geo_assign/io/config.py
import json
import os

from geo_assign.config.models import ScenarioModel


def load_scenario(path: str) -> ScenarioModel:
    path = os.path.expandvars(os.path.expanduser(path))
    with open(path, encoding="utf-8") as f:
        return ScenarioModel.model_validate(json.load(f))
