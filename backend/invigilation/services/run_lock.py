from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from threading import Lock
from typing import Iterator

from invigilation.core.exceptions import AllocationInProgressError


@dataclass(frozen=True)
class AllocationScope:
    campus: str | None = None
    department: str | None = None

    def overlaps(self, other: "AllocationScope") -> bool:
        # An unspecified campus or department covers every value.
        campus_clash = self.campus is None or other.campus is None or self.campus == other.campus
        department_clash = (
            self.department is None or other.department is None or self.department == other.department
        )
        return campus_clash and department_clash

    def describe(self) -> str:
        return f"campus={self.campus or '*'}, department={self.department or '*'}"


class AllocationRunRegistry:
    """Process-local guard so two runs never mutate an overlapping scope at once."""

    def __init__(self) -> None:
        self._active: list[AllocationScope] = []
        self._lock = Lock()

    def acquire(self, scope: AllocationScope) -> None:
        with self._lock:
            for active in self._active:
                if active.overlaps(scope):
                    raise AllocationInProgressError(
                        "An allocation run is already in progress for an overlapping scope",
                        details={"requested": scope.describe(), "active": active.describe()},
                    )
            self._active.append(scope)

    def release(self, scope: AllocationScope) -> None:
        with self._lock:
            if scope in self._active:
                self._active.remove(scope)

    @contextmanager
    def hold(self, scope: AllocationScope) -> Iterator[None]:
        self.acquire(scope)
        try:
            yield
        finally:
            self.release(scope)

    def clear(self) -> None:
        with self._lock:
            self._active.clear()


_registry = AllocationRunRegistry()


def allocation_run_lock(scope: AllocationScope):
    return _registry.hold(scope)


def clear_allocation_runs() -> None:
    _registry.clear()
