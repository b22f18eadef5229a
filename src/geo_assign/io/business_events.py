# geo_assign/io/business_events.py

from dataclasses import dataclass


# Base type for analytics events
@dataclass
class BizEvent:
    run_id: str
    seq: int  # emission order within the run
    name: str  # stable event name


@dataclass
class AssignmentMadeBiz(BizEvent):
    individual_index: int
    facility_index: int
    category: str
    distance_km: float


@dataclass
class DistanceFallbackBiz(BizEvent):
    tier: str  # tier that failed
    pair: str  # symmetric pair key
    error: str


@dataclass
class RunCompletedBiz(BizEvent):
    assigned: int
    unassigned: int
    wall_ms: float | None = None
