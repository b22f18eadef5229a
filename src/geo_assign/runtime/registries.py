# runtime/registries.py
from collections.abc import Callable

from geo_assign.app.protocols import DistanceStrategy
from geo_assign.config.models import (
    GridStrategyModel,
    HaversineStrategyModel,
    OsrmStrategyModel,
    StrategyUnion,
)
from geo_assign.domain.mechanics.mechanics_grid_search import GridSearchEngine
from geo_assign.domain.mechanics.mechanics_strategies import (
    GridSearchStrategy,
    HaversineStrategy,
    RoutingStrategy,
)
from geo_assign.services.routing_client import OsrmRoutingClient, create_retry_session

StrategyFactory = Callable[[StrategyUnion, dict], DistanceStrategy]

_strategy_registry: dict[str, StrategyFactory] = {}


# ------------------- Distance strategy registry ---------------------------


def register_strategy(kind: str):
    def deco(fn: StrategyFactory):
        _strategy_registry[kind] = fn
        return fn

    return deco


def make_strategy(cfg: StrategyUnion, *, deps: dict | None = None) -> DistanceStrategy:
    """
    deps can include:
      - 'session': requests.Session  # shared HTTP session for routing tiers
    """
    try:
        factory = _strategy_registry[cfg.kind]
    except KeyError:
        raise ValueError(f"Unknown distance strategy kind {cfg.kind!r}")
    return factory(cfg, deps or {})


def registered_kinds() -> list[str]:
    return sorted(_strategy_registry)


@register_strategy("grid")
def _make_grid(cfg: GridStrategyModel, deps):
    engine = GridSearchEngine(
        cell_deg=cfg.cell_deg,
        margin_deg=cfg.margin_deg,
        km_per_deg=cfg.km_per_deg,
        diagonal_factor=cfg.diagonal_factor,
        max_expansions=cfg.max_expansions,
    )
    return GridSearchStrategy(engine, max_radius_km=cfg.max_radius_km)


@register_strategy("osrm")
def _make_osrm(cfg: OsrmStrategyModel, deps):
    session = deps.get("session") or create_retry_session(
        retries=cfg.retries, backoff_factor=cfg.backoff_factor, user_agent=cfg.user_agent
    )
    client = OsrmRoutingClient(
        cfg.base_url,
        connect_timeout_s=cfg.connect_timeout_s,
        total_timeout_s=cfg.total_timeout_s,
        session=session,
    )
    return RoutingStrategy(client)


@register_strategy("haversine")
def _make_haversine(cfg: HaversineStrategyModel, deps):
    return HaversineStrategy()
