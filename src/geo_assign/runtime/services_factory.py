# geo_assign/runtime/services_factory.py
from geo_assign.app.hooks import RunHooks
from geo_assign.config.models import OracleModel
from geo_assign.runtime.registries import make_strategy
from geo_assign.services.distance_cache import DistanceCache
from geo_assign.services.distance_oracle import TieredDistanceOracle


def make_oracle(
    cfg: OracleModel, *, session=None, hooks: RunHooks | None = None, clock=None
) -> TieredDistanceOracle:
    deps = {"session": session} if session is not None else {}
    strategies = [make_strategy(s, deps=deps) for s in cfg.strategies]
    cache = (
        DistanceCache(timeout_s=cfg.cache.timeout_s)
        if clock is None
        else DistanceCache(timeout_s=cfg.cache.timeout_s, clock=clock)
    )
    return TieredDistanceOracle(
        strategies,
        cache=cache,
        batch_size=cfg.batch_size,
        progress_every=cfg.progress_every,
        throttle_s=cfg.throttle_s,
        workers=cfg.workers,
        hooks=hooks,
    )
