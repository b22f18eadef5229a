from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class LogModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    debug: bool = False
    sample_every: int = 1


# ----------------- DISTANCE STRATEGIES ---------------------


class GridStrategyModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    kind: Literal["grid"] = "grid"
    cell_deg: float = 0.001  # ~100 m
    margin_deg: float = 0.005  # ~500 m
    km_per_deg: float = 111.0
    diagonal_factor: float = 1.414
    max_radius_km: float = 100.0
    max_expansions: int | None = None  # None => unbounded

    @field_validator("cell_deg", "km_per_deg", "diagonal_factor", "max_radius_km")
    @classmethod
    def _positive(cls, v: float, info: ValidationInfo) -> float:
        if v <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return v

    @field_validator("margin_deg")
    @classmethod
    def _nonneg(cls, v: float) -> float:
        if v < 0:
            raise ValueError("margin_deg must be >= 0")
        return v


class OsrmStrategyModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    kind: Literal["osrm"] = "osrm"
    base_url: str = "https://router.project-osrm.org/route/v1/driving"
    connect_timeout_s: float = 5.0
    total_timeout_s: float = 10.0
    retries: int = 0
    backoff_factor: float = 0.5
    user_agent: str | None = "RouteAnalyzer/1.0"

    @field_validator("base_url")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        return v

    @field_validator("connect_timeout_s", "total_timeout_s")
    @classmethod
    def _positive(cls, v: float, info: ValidationInfo) -> float:
        if v <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return v


class HaversineStrategyModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    kind: Literal["haversine"] = "haversine"


StrategyUnion = Annotated[
    GridStrategyModel | OsrmStrategyModel | HaversineStrategyModel,
    Field(discriminator="kind"),
]


# ------------------ SERVICES -----------------------------


class CacheModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    timeout_s: float = 300.0

    @field_validator("timeout_s")
    @classmethod
    def _nonneg(cls, v: float) -> float:
        if v < 0:
            raise ValueError("timeout_s must be >= 0")
        return v


class OracleModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    # tried in order; Haversine is always appended as the last resort
    strategies: list[StrategyUnion] = Field(
        default_factory=lambda: [GridStrategyModel(), OsrmStrategyModel()]
    )
    cache: CacheModel = Field(default_factory=CacheModel)
    batch_size: int = 25
    progress_every: int = 10
    throttle_s: float = 0.0
    workers: int = 1

    @field_validator("batch_size", "progress_every", "workers")
    @classmethod
    def _at_least_one(cls, v: int, info: ValidationInfo) -> int:
        if v < 1:
            raise ValueError(f"{info.field_name} must be >= 1")
        return v


# ------------------ POLICIES -----------------------------


class AssignmentModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    capacity_per_facility: int = 50
    distance_mode: Literal["road", "straight"] = "road"
    progress_every: int = 10

    @field_validator("capacity_per_facility")
    @classmethod
    def _nonneg(cls, v: int) -> int:
        if v < 0:
            raise ValueError("capacity_per_facility must be >= 0")
        return v


# ------------------------------------------------------------------


class ScenarioModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str = "default"
    run_id: str = "local"
    log: LogModel = LogModel()
    oracle: OracleModel = Field(default_factory=OracleModel)
    assignment: AssignmentModel = Field(default_factory=AssignmentModel)
