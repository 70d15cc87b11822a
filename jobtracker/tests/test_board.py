"""Tests for board move planning and the optimistic move command."""

from __future__ import annotations

import random

import pytest

from jobtracker.exceptions import NotFoundError, StoreError, ValidationFailedError
from jobtracker.services.board import (
    Board,
    MoveCommand,
    OrderUpdate,
    apply_optimistically,
    array_move,
    plan_column_order,
    plan_move,
    resolve_drop_target,
    validate_ordering,
)
from jobtracker.status import STATUSES
from jobtracker.status import ApplicationStatus as S


def _board(**columns) -> Board:
    cols = {s: () for s in STATUSES}
    for name, ids in columns.items():
        cols[S(name)] = tuple(ids)
    return Board(cols)


def _assert_dense(board: Board) -> None:
    seen = [app_id for status in STATUSES for app_id in board.column(status)]
    assert len(seen) == len(set(seen))


class TestArrayMove:
    def test_move_forward(self):
        assert array_move(["A", "B", "C"], 0, 2) == ["B", "C", "A"]

    def test_move_backward(self):
        assert array_move(["A", "B", "C"], 2, 0) == ["C", "A", "B"]

    def test_input_untouched(self):
        ids = [1, 2, 3]
        array_move(ids, 0, 1)
        assert ids == [1, 2, 3]


class TestValidateOrdering:
    def test_accepts_unique_ints(self):
        assert validate_ordering((3, 1, 2)) == [3, 1, 2]

    @pytest.mark.parametrize("ids", [[], [1, 1], [1, "2"], [True, 2]])
    def test_rejects(self, ids):
        with pytest.raises(ValidationFailedError):
            validate_ordering(ids)


class TestBoardSnapshot:
    def test_from_positions_sorts_by_order_then_id(self):
        board = Board.from_positions(
            [(5, "APPLIED", 1), (3, "APPLIED", 0), (9, "APPLIED", 1), (4, "OFFER", 0)]
        )
        assert board.column(S.APPLIED) == (3, 5, 9)
        assert board.column(S.OFFER) == (4,)
        assert board.column(S.INTERVIEW) == ()

    def test_index_of_unknown(self):
        with pytest.raises(NotFoundError):
            _board(APPLIED=[1]).index_of(99)


class TestPlanMove:
    def test_same_column_reorder(self):
        board = _board(APPLIED=[1, 2, 3])
        plan = plan_move(board, 1, S.APPLIED, 2)

        assert plan.updates == (OrderUpdate(2, 0), OrderUpdate(3, 1), OrderUpdate(1, 2))
        assert not plan.is_cross_column
        assert board.with_plan(plan).column(S.APPLIED) == (2, 3, 1)

    def test_cross_column_into_empty(self):
        board = _board(APPLIED=[1, 2])
        plan = plan_move(board, 1, S.OFFER, 0)
        after = board.with_plan(plan)

        assert after.column(S.APPLIED) == (2,)
        assert after.column(S.OFFER) == (1,)
        assert OrderUpdate(1, 0, S.OFFER) in plan.updates
        assert OrderUpdate(2, 0) in plan.updates
        assert plan.is_cross_column

    def test_only_moved_row_changes_status(self):
        plan = plan_move(_board(APPLIED=[1, 2], INTERVIEW=[3, 4]), 2, S.INTERVIEW, 1)
        assert [u.id for u in plan.updates if u.status is not None] == [2]
        assert [u.id for u in plan.updates if u.status is None] == [3, 4, 1]

    def test_noop_when_already_in_place(self):
        plan = plan_move(_board(APPLIED=[1, 2, 3]), 2, S.APPLIED, 1)
        assert plan.is_noop
        assert plan.updates == ()

    def test_index_past_end_is_clamped(self):
        board = _board(APPLIED=[1, 2], OFFER=[3])
        assert board.with_plan(plan_move(board, 1, S.APPLIED, 50)).column(S.APPLIED) == (2, 1)
        assert board.with_plan(plan_move(board, 1, S.OFFER, 50)).column(S.OFFER) == (3, 1)

    def test_negative_index_rejected(self):
        with pytest.raises(ValidationFailedError):
            plan_move(_board(APPLIED=[1]), 1, S.OFFER, -1)

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationFailedError):
            plan_move(_board(APPLIED=[1]), 1, "ARCHIVED", 0)

    def test_unknown_card(self):
        with pytest.raises(NotFoundError):
            plan_move(_board(APPLIED=[1]), 2, S.APPLIED, 0)

    def test_random_moves_keep_columns_dense(self):
        rng = random.Random(1234)
        board = _board(APPLIED=range(1, 6), INTERVIEW=range(6, 9), OFFER=[9], REJECTED=[])
        for _ in range(200):
            moved = rng.randint(1, 9)
            dest = rng.choice(STATUSES)
            index = rng.randint(0, 10)
            board = board.with_plan(plan_move(board, moved, dest, index))
            _assert_dense(board)
        assert sorted(i for s in STATUSES for i in board.column(s)) == list(range(1, 10))

    def test_plan_updates_are_dense_per_column(self):
        plan = plan_move(_board(APPLIED=[1, 2, 3], OFFER=[4, 5]), 2, S.OFFER, 1)
        by_column: dict[str, list[int]] = {}
        placement = {1: S.APPLIED, 3: S.APPLIED, 4: S.OFFER, 5: S.OFFER}
        for update in plan.updates:
            status = update.status or placement[update.id]
            by_column.setdefault(status, []).append(update.order)
        assert {k: sorted(v) for k, v in by_column.items()} == {
            S.OFFER: [0, 1, 2],
            S.APPLIED: [0, 1],
        }


class TestResolveDropTarget:
    def test_drop_on_card_takes_its_slot(self):
        board = _board(APPLIED=[1], INTERVIEW=[2, 3])
        assert resolve_drop_target(board, 1, over_id=3) == (S.INTERVIEW, 1)

    def test_drop_on_column_appends(self):
        board = _board(APPLIED=[1], INTERVIEW=[2, 3])
        assert resolve_drop_target(board, 1, dest_status="INTERVIEW") == (S.INTERVIEW, 2)

    def test_explicit_index(self):
        board = _board(APPLIED=[1], INTERVIEW=[2, 3])
        assert resolve_drop_target(board, 1, dest_status=S.INTERVIEW, dest_index=0) == (
            S.INTERVIEW,
            0,
        )

    def test_no_target_stays_in_place(self):
        assert resolve_drop_target(_board(APPLIED=[1, 2]), 2) == (S.APPLIED, 1)

    def test_index_without_column_reorders_own_column(self):
        board = _board(APPLIED=[1, 2, 3])
        assert resolve_drop_target(board, 1, dest_index=2) == (S.APPLIED, 2)

        moved, plan, _ = MoveCommand(1, dest_index=2).apply(board)
        assert not plan.is_noop
        assert moved.column(S.APPLIED) == (2, 3, 1)

    def test_unknown_card_target(self):
        with pytest.raises(ValidationFailedError):
            resolve_drop_target(_board(APPLIED=[1]), 1, over_id=42)


class TestPlanColumnOrder:
    def test_exact_order(self):
        board = _board(APPLIED=[1, 2, 3])
        updates = plan_column_order(board, "APPLIED", [3, 1, 2])
        assert updates == (OrderUpdate(3, 0), OrderUpdate(1, 1), OrderUpdate(2, 2))

    def test_unlisted_members_follow(self):
        updates = plan_column_order(_board(APPLIED=[1, 2, 3]), S.APPLIED, [3])
        assert [u.id for u in updates] == [3, 1, 2]

    def test_pulls_card_from_other_column(self):
        board = _board(APPLIED=[1, 2, 3], INTERVIEW=[4])
        updates = plan_column_order(board, S.INTERVIEW, [2, 4])

        assert updates[0] == OrderUpdate(2, 0, S.INTERVIEW)
        assert updates[1] == OrderUpdate(4, 1)
        assert OrderUpdate(1, 0) in updates
        assert OrderUpdate(3, 1) in updates

    def test_unknown_ids_rejected(self):
        with pytest.raises(ValidationFailedError, match="Unknown"):
            plan_column_order(_board(APPLIED=[1]), S.APPLIED, [1, 77])

    def test_duplicates_rejected(self):
        with pytest.raises(ValidationFailedError, match="duplicates"):
            plan_column_order(_board(APPLIED=[1, 2]), S.APPLIED, [1, 1])


class TestMoveCommand:
    def test_apply_and_undo(self):
        board = _board(APPLIED=[1, 2, 3])
        moved, plan, undo = MoveCommand(1, S.APPLIED, 2).apply(board)

        assert moved.column(S.APPLIED) == (2, 3, 1)
        assert not plan.is_noop
        assert undo() == board
        assert board.column(S.APPLIED) == (1, 2, 3)

    async def test_optimistic_success(self):
        board = _board(APPLIED=[1, 2])
        persisted = []

        async def persist(plan):
            persisted.append(plan)

        shown, error = await apply_optimistically(board, MoveCommand(1, S.OFFER, 0), persist)

        assert error is None
        assert shown.column(S.OFFER) == (1,)
        assert len(persisted) == 1

    async def test_optimistic_failure_rolls_back(self):
        board = _board(APPLIED=[1, 2])

        async def persist(plan):
            raise StoreError("Move failed; nothing was applied")

        shown, error = await apply_optimistically(board, MoveCommand(1, S.OFFER, 0), persist)

        assert isinstance(error, StoreError)
        assert shown == board

    async def test_noop_skips_persistence(self):
        async def persist(plan):
            raise AssertionError("should not persist a no-op")

        board = _board(APPLIED=[1, 2])
        shown, error = await apply_optimistically(board, MoveCommand(2, S.APPLIED, 1), persist)
        assert error is None
        assert shown == board
