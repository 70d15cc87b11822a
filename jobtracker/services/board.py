"""Board ordering — plan drag-and-drop moves as dense per-column orderings.

Planning is pure: a ``Board`` snapshot plus a gesture yields a ``MovePlan``
listing the ``(id, order, status?)`` writes for every row in the affected
columns. Persisting a plan is the store's job (``commit_ordering``), which
applies it in one transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Mapping, Sequence

from jobtracker.exceptions import AppError, NotFoundError, ValidationFailedError
from jobtracker.status import STATUSES, ApplicationStatus, parse_status

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderUpdate:
    id: int
    order: int
    status: ApplicationStatus | None = None


@dataclass(frozen=True)
class MovePlan:
    moved_id: int
    source_status: ApplicationStatus
    dest_status: ApplicationStatus
    updates: tuple[OrderUpdate, ...] = ()

    @property
    def is_noop(self) -> bool:
        return not self.updates

    @property
    def is_cross_column(self) -> bool:
        return self.source_status != self.dest_status


def array_move(ids: Sequence[int], old_index: int, new_index: int) -> list[int]:
    """Remove the element at *old_index* and reinsert it at *new_index*."""
    moved = list(ids)
    item = moved.pop(old_index)
    moved.insert(new_index, item)
    return moved


def validate_ordering(ids: Sequence[Any]) -> list[int]:
    """Check an incoming id list is non-empty, integral and duplicate-free."""
    if not ids:
        raise ValidationFailedError("ordered_ids must be a non-empty list")
    if any(isinstance(i, bool) or not isinstance(i, int) for i in ids):
        raise ValidationFailedError("ordered_ids must be integers")
    if len(set(ids)) != len(ids):
        raise ValidationFailedError("ordered_ids contains duplicates")
    return list(ids)


@dataclass(frozen=True)
class Board:
    """Column orderings keyed by status. Each column is a tuple of ids."""

    columns: Mapping[ApplicationStatus, tuple[int, ...]] = field(
        default_factory=lambda: {s: () for s in STATUSES}
    )

    @classmethod
    def from_positions(cls, positions: Iterable[tuple[int, Any, int]]) -> Board:
        """Build from ``(id, status, order)`` triples; ties on order fall back to id."""
        buckets: dict[ApplicationStatus, list[tuple[int, int]]] = {s: [] for s in STATUSES}
        for app_id, status, order in positions:
            buckets[parse_status(status)].append((order, app_id))
        return cls({s: tuple(app_id for _, app_id in sorted(rows)) for s, rows in buckets.items()})

    @classmethod
    def from_rows(cls, rows: Iterable[Any]) -> Board:
        return cls.from_positions((row.id, row.status, row.order) for row in rows)

    def column(self, status: ApplicationStatus) -> tuple[int, ...]:
        return self.columns[status]

    def status_of(self, app_id: int) -> ApplicationStatus | None:
        for status, ids in self.columns.items():
            if app_id in ids:
                return status
        return None

    def index_of(self, app_id: int) -> int:
        status = self.status_of(app_id)
        if status is None:
            raise NotFoundError(f"Application {app_id} not found")
        return self.columns[status].index(app_id)

    def with_plan(self, plan: MovePlan) -> Board:
        """The board as it looks once *plan* has been applied."""
        placement = {
            app_id: (status, index)
            for status, ids in self.columns.items()
            for index, app_id in enumerate(ids)
        }
        for update in plan.updates:
            status = update.status or placement[update.id][0]
            placement[update.id] = (status, update.order)
        return Board.from_positions(
            (app_id, status, order) for app_id, (status, order) in placement.items()
        )


def resolve_drop_target(
    board: Board,
    moved_id: int,
    *,
    dest_status: ApplicationStatus | str | None = None,
    dest_index: int | None = None,
    over_id: int | None = None,
) -> tuple[ApplicationStatus, int]:
    """Turn a drop gesture into ``(dest_status, insertion index)``.

    Dropping onto a card takes that card's position; dropping onto a column
    appends to it unless an explicit index is given.
    """
    if over_id is not None and over_id != moved_id:
        over_status = board.status_of(over_id)
        if over_status is None:
            raise ValidationFailedError(f"Drop target {over_id} does not exist")
        return over_status, board.index_of(over_id)

    if dest_status is None:
        # An index alone reorders within the card's own column
        source = board.status_of(moved_id)
        if source is None:
            raise NotFoundError(f"Application {moved_id} not found")
        if dest_index is None:
            return source, board.index_of(moved_id)
        return source, dest_index

    status = parse_status(dest_status)
    if dest_index is None:
        dest_index = len(board.column(status))
    return status, dest_index


def plan_move(
    board: Board,
    moved_id: int,
    dest_status: ApplicationStatus | str,
    dest_index: int,
) -> MovePlan:
    """Compute the dense orderings that result from moving one card.

    Same-column moves are a remove-then-insert splice; cross-column moves
    re-densify the source column and insert into the destination at
    *dest_index* (clamped to the column bounds).
    """
    dest = parse_status(dest_status)
    source = board.status_of(moved_id)
    if source is None:
        raise NotFoundError(f"Application {moved_id} not found")
    if dest_index < 0:
        raise ValidationFailedError("dest_index must be non-negative")

    if source == dest:
        ids = board.column(source)
        old_index = ids.index(moved_id)
        new_index = min(dest_index, len(ids) - 1)
        if old_index == new_index:
            return MovePlan(moved_id, source, dest)
        ordered = array_move(ids, old_index, new_index)
        return MovePlan(
            moved_id,
            source,
            dest,
            tuple(OrderUpdate(app_id, index) for index, app_id in enumerate(ordered)),
        )

    source_ids = [app_id for app_id in board.column(source) if app_id != moved_id]
    dest_ids = list(board.column(dest))
    dest_ids.insert(min(dest_index, len(dest_ids)), moved_id)

    updates = [
        OrderUpdate(app_id, index, dest if app_id == moved_id else None)
        for index, app_id in enumerate(dest_ids)
    ]
    updates.extend(OrderUpdate(app_id, index) for index, app_id in enumerate(source_ids))
    return MovePlan(moved_id, source, dest, tuple(updates))


def plan_column_order(
    board: Board,
    status: ApplicationStatus | str,
    ordered_ids: Sequence[Any],
) -> tuple[OrderUpdate, ...]:
    """Writes that make *status* read exactly *ordered_ids*, front first.

    Cards of that column missing from the list keep their relative order
    after the listed ones. Listed cards taken from other columns change
    status, and the columns they leave are re-densified.
    """
    status = parse_status(status)
    ids = validate_ordering(ordered_ids)
    unknown = [app_id for app_id in ids if board.status_of(app_id) is None]
    if unknown:
        raise ValidationFailedError(f"Unknown application ids: {unknown}")

    listed = set(ids)
    column = ids + [app_id for app_id in board.column(status) if app_id not in listed]
    updates = [
        OrderUpdate(app_id, index, status if board.status_of(app_id) != status else None)
        for index, app_id in enumerate(column)
    ]
    for other in STATUSES:
        if other == status:
            continue
        before = board.column(other)
        after = [app_id for app_id in before if app_id not in listed]
        if len(after) != len(before):
            updates.extend(OrderUpdate(app_id, index) for index, app_id in enumerate(after))
    return tuple(updates)


@dataclass(frozen=True)
class MoveCommand:
    """A single board gesture that can be applied and undone."""

    moved_id: int
    dest_status: ApplicationStatus | None = None
    dest_index: int | None = None
    over_id: int | None = None

    def plan(self, board: Board) -> MovePlan:
        status, index = resolve_drop_target(
            board,
            self.moved_id,
            dest_status=self.dest_status,
            dest_index=self.dest_index,
            over_id=self.over_id,
        )
        return plan_move(board, self.moved_id, status, index)

    def apply(self, board: Board) -> tuple[Board, MovePlan, Callable[[], Board]]:
        """Return the moved board, the plan that produced it and an undo callback."""
        plan = self.plan(board)
        return board.with_plan(plan), plan, lambda: board


async def apply_optimistically(
    board: Board,
    command: MoveCommand,
    persist: Callable[[MovePlan], Awaitable[Any]],
) -> tuple[Board, AppError | None]:
    """Apply *command* locally, persist it, and undo if persistence fails.

    Returns the board to display and the persistence error, if any. No
    retry: a failed move is re-attempted only from a freshly read board.
    """
    moved, plan, undo = command.apply(board)
    if plan.is_noop:
        return moved, None
    try:
        await persist(plan)
    except AppError as exc:
        logger.warning("Move of application %s rolled back: %s", command.moved_id, exc.detail)
        return undo(), exc
    return moved, None
