import math
from collections import Counter

import numpy as np
import pytest

from geo_assign.domain.entities.assignment import AssignmentStatistics, FacilityCapacityTable
from geo_assign.domain.entities.geography import Category, GeoPoint
from geo_assign.policy.assign import DistanceMode, PriorityAssignmentEngine


def person(lat, lng, cat="priority_c"):
    return GeoPoint(lat, lng, "individual", cat)


# --- stub oracle ---
class _MatrixOracle:
    def __init__(self, matrix):
        self.matrix = np.asarray(matrix, dtype=float)
        self.calls = 0

    def distance_km(self, a, b):
        raise AssertionError("engine should ask for the whole matrix")

    def distance_matrix(self, rows, cols):
        self.calls += 1
        assert self.matrix.shape == (len(rows), len(cols))
        return self.matrix

    def stats(self):
        return {}


@pytest.fixture
def engine() -> PriorityAssignmentEngine:
    return PriorityAssignmentEngine(distance_mode=DistanceMode.STRAIGHT)


def test_single_slot_goes_to_highest_priority(engine: PriorityAssignmentEngine):
    individuals = [
        person(0, 0, "priority_a"),
        person(0, 0.001, "priority_c"),
        person(0, 0.002, "priority_b"),
    ]
    facilities = [GeoPoint.facility(0, 0)]
    records, stats = engine.assign(individuals, facilities, capacity_per_facility=1)

    assert len(records) == 1
    rec = records[0]
    assert rec.individual_index == 0 and rec.facility_index == 0
    assert rec.category is Category.PRIORITY_A
    assert rec.distance_km == 0.0
    assert stats.total_assigned == 1
    assert stats.priority_a_assigned == 1
    assert stats.priority_b_assigned == stats.priority_c_assigned == 0


def test_priority_beats_distance(engine: PriorityAssignmentEngine):
    near_c = person(0.0, 0.0001, "priority_c")
    far_a = person(0.5, 0.5, "priority_a")
    records, _ = engine.assign([near_c, far_a], [GeoPoint.facility(0, 0)], 1)
    assert [r.individual_index for r in records] == [1]
    assert records[0].individual is far_a


def test_priority_b_before_c_and_stable_within_category(engine: PriorityAssignmentEngine):
    individuals = [
        person(0, 0.003, "male"),
        person(0, 0.002, "female"),
        person(0, 0.001, "female"),
        person(0, 0.000, "male"),
        person(0, 0.004, "female"),
    ]
    records, stats = engine.assign(individuals, [GeoPoint.facility(0, 0)], 3)
    assert [r.individual_index for r in records] == [1, 2, 4]
    assert stats.priority_b_assigned == 3 and stats.priority_c_assigned == 0


def test_priority_order_is_stable():
    labels = {"a": "priority_a", "b": "priority_b", "c": "priority_c"}
    individuals = [person(0, i, labels[c]) for i, c in enumerate("cbacab")]
    assert PriorityAssignmentEngine.priority_order(individuals) == [2, 4, 1, 5, 0, 3]


def test_nearest_open_facility_wins_and_ties_go_to_lowest_index(engine):
    facilities = [GeoPoint.facility(1.0, 1.0), GeoPoint.facility(0.0, 0.1), GeoPoint.facility(0.0, 0.1)]
    records, _ = engine.assign([person(0, 0), person(0, 0)], facilities, 1)
    assert [r.facility_index for r in records] == [1, 2]


def test_full_facilities_push_individuals_to_next_nearest(engine):
    facilities = [GeoPoint.facility(0.0, 0.0), GeoPoint.facility(0.0, 1.0)]
    individuals = [person(0, 0.01 * i) for i in range(5)]
    records, stats = engine.assign(individuals, facilities, 2)
    assert [r.facility_index for r in records] == [0, 0, 1, 1]
    assert stats.facility_load == {0: 2, 1: 2}
    assert engine.remaining_capacity() == {0: 0, 1: 0}
    assert 4 not in engine.assignments


def test_capacity_never_overdrawn_on_random_population(engine):
    rng = np.random.default_rng(7)
    cats = ["priority_a", "priority_b", "priority_c"]
    individuals = [
        person(float(rng.uniform(-1, 1)), float(rng.uniform(-1, 1)), cats[int(rng.integers(0, 3))])
        for _ in range(120)
    ]
    facilities = [GeoPoint.facility(float(rng.uniform(-1, 1)), float(rng.uniform(-1, 1))) for _ in range(4)]
    cap = 20
    records, stats = engine.assign(individuals, facilities, cap)

    load = Counter(r.facility_index for r in records)
    assert all(cap - load[j] >= 0 for j in range(len(facilities)))
    assert stats.total_assigned == len(records) == min(len(individuals), cap * len(facilities))
    assert len({r.individual_index for r in records}) == len(records)
    # every priority_a individual fits, so none may be left out
    n_a = sum(1 for p in individuals if p.category is Category.PRIORITY_A)
    assert stats.priority_a_assigned == n_a


def test_statistics_values(engine):
    facilities = [GeoPoint.facility(0.0, 0.0)]
    individuals = [person(0, 0, "priority_a"), person(0, 0.01, "priority_b"), person(0, 0.02)]
    records, stats = engine.assign(individuals, facilities, 10)
    d = [r.distance_km for r in records]
    assert stats.min_km == min(d) == 0.0
    assert stats.max_km == pytest.approx(max(d))
    assert stats.average_km == pytest.approx(sum(d) / 3)
    assert stats.as_dict()["by_category"] == {"priority_a": 1, "priority_b": 1, "priority_c": 1}


def test_empty_inputs_return_empty_results(engine):
    records, stats = engine.assign([], [GeoPoint.facility(0, 0)])
    assert records == [] and stats.total_assigned == 0
    assert math.isinf(stats.min_km) and stats.max_km == 0.0 and stats.average_km == 0.0

    records, stats = engine.assign([person(0, 0)], [])
    assert records == [] and stats.total_assigned == 0
    assert stats.as_dict()["min_km"] is None


def test_zero_capacity_assigns_nobody(engine):
    records, _ = engine.assign([person(0, 0)], [GeoPoint.facility(0, 0)], 0)
    assert records == []


def test_road_mode_uses_oracle_matrix():
    oracle = _MatrixOracle([[5.0, 1.0], [0.5, 0.7]])
    engine = PriorityAssignmentEngine(oracle, capacity_per_facility=1)
    records, _ = engine.assign(
        [person(0, 0), person(0, 0)], [GeoPoint.facility(0, 0), GeoPoint.facility(0, 0)]
    )
    assert oracle.calls == 1
    assert [(r.individual_index, r.facility_index, r.distance_km) for r in records] == [
        (0, 1, 1.0),
        (1, 0, 0.5),
    ]


def test_mode_can_be_switched_per_run():
    oracle = _MatrixOracle([[5.0]])
    engine = PriorityAssignmentEngine(oracle)
    records, _ = engine.assign([person(0, 0)], [GeoPoint.facility(0, 0)], distance_mode="straight")
    assert oracle.calls == 0 and records[0].distance_km == 0.0


def test_road_mode_without_oracle_uses_haversine():
    engine = PriorityAssignmentEngine(None, distance_mode=DistanceMode.ROAD)
    records, _ = engine.assign([person(0, 0)], [GeoPoint.facility(0, 0)])
    assert records[0].distance_km == 0.0


def test_progress_milestones(engine):
    seen = []
    engine.set_progress_callback(lambda done, total, msg: seen.append((done, total, msg)))
    individuals = [person(0, 0.001 * i) for i in range(25)]
    engine.assign(individuals, [GeoPoint.facility(0, 0)], 20)
    assert seen[0] == (0, 25, "Calculating distance matrix")
    assert seen[1] == (0, 25, "Distance matrix ready")
    assert [d for d, _, _ in seen[2:]] == [10, 20, 25]
    assert seen[-1][2] == "Assigned 20/25 individuals"


def test_each_run_resets_capacity_and_clear(engine):
    facilities = [GeoPoint.facility(0, 0)]
    engine.assign([person(0, 0)] * 3, facilities, 2)
    records, _ = engine.assign([person(0, 0)] * 3, facilities, 2)
    assert len(records) == 2
    engine.clear_assignments()
    assert engine.assignments == {} and engine.statistics.total_assigned == 0
    assert engine.remaining_capacity() == {}


def test_complexity_info_reflects_mode():
    assert "straight-line" in PriorityAssignmentEngine(None).complexity_info()["description"]
    assert "road" in PriorityAssignmentEngine(_MatrixOracle([[1.0]])).complexity_info()["description"]


# --- capacity table / statistics ---


def test_capacity_table_never_goes_negative():
    table = FacilityCapacityTable(2, 1)
    table.consume(0)
    assert table.remaining(0) == 0 and table.assigned_count(0) == 1
    assert table.available() == [1]
    with pytest.raises(ValueError):
        table.consume(0)
    assert table.remaining(0) == 0
    table.reset(2, 3)
    assert table.snapshot() == {0: 3, 1: 3}


def test_statistics_defaults():
    stats = AssignmentStatistics()
    assert stats.total_assigned == 0 and math.isinf(stats.min_km)
    assert set(stats.by_category) == {Category.PRIORITY_A, Category.PRIORITY_B, Category.PRIORITY_C}
