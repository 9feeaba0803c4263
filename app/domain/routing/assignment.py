"""
Route assignment writes.

RouteStop.stop_order is the only stored copy of a job's position; the job's
route_id / route_order are read through its stop. Every public method here
finishes in a single commit so the 1..N numbering is never left half-written.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ...models_route import Job, Route, RouteStop

logger = logging.getLogger(__name__)


class RouteLockedError(ValueError):
    """Raised when stops are changed on a COMPLETED route"""


def sorted_stops(route: Route) -> list[RouteStop]:
    return sorted(route.stops, key=lambda s: s.stop_order)


def ensure_route_editable(route: Route) -> None:
    if route.status == "COMPLETED":
        raise RouteLockedError("Cannot change stops on a completed route")


class RouteAssignmentWriter:
    def __init__(self, db: Session):
        self.db = db

    def apply_order(self, route: Route, ordered_job_ids: Iterable[str]) -> list[RouteStop]:
        """
        Number the route's stops 1..N following ``ordered_job_ids``.

        Ids not on the route are ignored; stops missing from the list keep
        their relative order after the listed ones.
        """
        ensure_route_editable(route)
        by_job = {stop.job_id: stop for stop in route.stops}

        sequence: list[RouteStop] = []
        seen = set()
        for job_id in ordered_job_ids:
            stop = by_job.get(job_id)
            if stop is not None and job_id not in seen:
                sequence.append(stop)
                seen.add(job_id)
        sequence.extend(s for s in sorted_stops(route) if s.job_id not in seen)

        self._renumber(sequence)
        self.db.commit()
        return sequence

    def populate(self, route: Route, jobs: Iterable[Job]) -> list[RouteStop]:
        """Create stops for a new route, numbered in the order given"""
        ensure_route_editable(route)
        stops = [
            RouteStop(org_id=route.org_id, job=job, stop_order=index)
            for index, job in enumerate(jobs, start=1)
        ]
        route.stops.extend(stops)
        self.db.commit()
        return stops

    def reorder_stops(self, route: Route, stop_ids: Iterable[str]) -> list[RouteStop]:
        """Manual reorder by stop id"""
        ensure_route_editable(route)
        job_ids = {stop.id: stop.job_id for stop in route.stops}
        return self.apply_order(route, [job_ids[sid] for sid in stop_ids if sid in job_ids])

    def insert_stop(
        self,
        route: Route,
        job: Job,
        position: Optional[int] = None,
        estimated_arrival=None,
    ) -> RouteStop:
        """
        Put ``job`` on the route.

        With a position inside the current sequence, stops at or after it move
        down one place first; otherwise the stop is appended.
        """
        ensure_route_editable(route)
        if position is not None and position < 1:
            raise ValueError("stop_order must be 1 or greater")

        next_order = len(route.stops) + 1
        order = next_order
        if position is not None and position < next_order:
            for stop in sorted_stops(route):
                if stop.stop_order >= position:
                    stop.stop_order += 1
            order = position

        stop = RouteStop(
            org_id=route.org_id,
            job=job,
            stop_order=order,
            estimated_arrival=estimated_arrival,
        )
        route.stops.append(stop)
        self.db.commit()
        self.db.refresh(stop)
        logger.info(f"📍 Job {job.id} added to route {route.id} at stop {order}")
        return stop

    def remove_stop(self, route: Route, stop: RouteStop) -> None:
        """Delete a stop and close the gap it leaves"""
        ensure_route_editable(route)
        stop_id, route_id = stop.id, route.id
        self._detach(route, stop)
        self.db.commit()
        logger.info(f"🗑️ Stop {stop_id} removed from route {route_id}")

    def detach_jobs(
        self, jobs: Iterable[Job], commit: bool = True, skip_locked: bool = False
    ) -> int:
        """
        Take jobs off whatever routes they are on, compacting each route.

        Stops on a COMPLETED route raise RouteLockedError before anything is
        changed, or are left in place with ``skip_locked``.
        """
        stops = [job.route_stop for job in jobs if job.route_stop is not None]
        if skip_locked:
            stops = [stop for stop in stops if stop.route.status != "COMPLETED"]
        for stop in stops:
            ensure_route_editable(stop.route)

        removed = 0
        for stop in stops:
            self._detach(stop.route, stop)
            removed += 1
        if commit:
            self.db.commit()
        return removed

    def _detach(self, route: Route, stop: RouteStop) -> None:
        removed_order = stop.stop_order
        route.stops.remove(stop)  # delete-orphan cascade drops the row
        for remaining in route.stops:
            if remaining.stop_order > removed_order:
                remaining.stop_order -= 1

    @staticmethod
    def _renumber(sequence: list[RouteStop]) -> None:
        for index, stop in enumerate(sequence, start=1):
            stop.stop_order = index
