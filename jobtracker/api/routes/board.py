"""Board routes — column view and drag-and-drop moves."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from jobtracker.models.database import get_db
from jobtracker.schemas.pydantic import ApplicationOut, BoardOut, MoveOut, MoveRequest
from jobtracker.services import application_store
from jobtracker.services.board import MoveCommand

router = APIRouter(prefix="/api/board", tags=["board"])


async def _board_out(db: AsyncSession) -> BoardOut:
    columns = await application_store.list_board(db)
    return BoardOut(
        columns={
            status: [ApplicationOut.model_validate(app) for app in apps]
            for status, apps in columns.items()
        }
    )


@router.get("", response_model=BoardOut)
async def get_board(db: AsyncSession = Depends(get_db)):
    """All columns in render order."""
    return await _board_out(db)


@router.post("/move", response_model=MoveOut)
async def move_card(body: MoveRequest, db: AsyncSession = Depends(get_db)):
    """Apply one drag-and-drop gesture atomically and return the resulting board.

    On any error nothing was written; the client should restore its
    pre-move snapshot and refetch.
    """
    command = MoveCommand(
        moved_id=body.application_id,
        dest_status=body.dest_status,
        dest_index=body.dest_index,
        over_id=body.over_application_id,
    )
    plan = await application_store.move_application(db, command)
    return MoveOut(moved=not plan.is_noop, board=await _board_out(db))
