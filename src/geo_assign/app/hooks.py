# app/hooks.py
from typing import Protocol

from geo_assign.domain.entities.assignment import AssignmentRecord


class RunHooks(Protocol):
    def run_start(self, *, individuals, facilities, capacity, mode): ...
    def run_end(self, *, assigned, unassigned, wall_ms): ...
    def progress(self, completed: int, total: int, message: str, *, source: str): ...
    def fallback(self, *, tier: str, error: str, pair: str): ...
    def assigned(self, record: AssignmentRecord): ...


class NoopHooks:
    def run_start(self, **_):
        pass

    def run_end(self, **_):
        pass

    def progress(self, *_, **__):
        pass

    def fallback(self, **_):
        pass

    def assigned(self, *_, **__):
        pass
