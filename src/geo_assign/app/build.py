# geo_assign/app/build.py
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from geo_assign.app.hooks import NoopHooks, RunHooks
from geo_assign.config.models import ScenarioModel
from geo_assign.domain.entities.assignment import AssignmentRecord, AssignmentStatistics
from geo_assign.domain.entities.geography import GeoPoint
from geo_assign.io.recorder import JsonlSink, Recorder, Sink
from geo_assign.io.run_logging import RunLogging
from geo_assign.policy.assign import DistanceMode, PriorityAssignmentEngine
from geo_assign.runtime.services_factory import make_oracle
from geo_assign.services.distance_oracle import TieredDistanceOracle


@dataclass
class App:
    config: ScenarioModel
    hooks: RunHooks
    oracle: TieredDistanceOracle
    engine: PriorityAssignmentEngine

    def run(
        self,
        individuals: Sequence[GeoPoint],
        facilities: Sequence[GeoPoint],
        *,
        distance_mode: DistanceMode | str | None = None,
    ) -> tuple[list[AssignmentRecord], AssignmentStatistics]:
        return self.engine.assign(individuals, facilities, distance_mode=distance_mode)


def build(
    cfg: ScenarioModel | Mapping | None = None,
    *,
    use_logging: bool = True,
    sinks: Sequence[Sink] | None = None,
    session=None,
    clock=None,
    logger: logging.Logger | None = None,
) -> App:
    # 0) Validate config
    if cfg is None:
        model = ScenarioModel()
    else:
        model = cfg if isinstance(cfg, ScenarioModel) else ScenarioModel.model_validate(cfg)

    # 1) Hooks (structured logs + analytics)
    hooks = (
        RunLogging(
            run_id=model.run_id,
            level=model.log.level,
            debug=model.log.debug,
            sample_every=model.log.sample_every,
            logger=logger,
            recorder=Recorder(*(sinks or [JsonlSink()])),
        )
        if use_logging
        else NoopHooks()
    )

    # 2) Distance oracle
    oracle = make_oracle(model.oracle, session=session, hooks=hooks, clock=clock)

    # 3) Assignment engine
    engine = PriorityAssignmentEngine(
        oracle,
        capacity_per_facility=model.assignment.capacity_per_facility,
        distance_mode=DistanceMode(model.assignment.distance_mode),
        progress_every=model.assignment.progress_every,
        hooks=hooks,
    )

    return App(config=model, hooks=hooks, oracle=oracle, engine=engine)
