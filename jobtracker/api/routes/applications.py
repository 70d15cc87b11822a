"""Application routes — create and manage tracked job applications."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from jobtracker.models.database import get_db
from jobtracker.schemas.pydantic import (
    ApplicationCreate,
    ApplicationOut,
    ApplicationUpdate,
    ReorderRequest,
)
from jobtracker.services import application_store

router = APIRouter(prefix="/api/applications", tags=["applications"])


@router.get("", response_model=list[ApplicationOut])
async def list_applications(db: AsyncSession = Depends(get_db)):
    """List all applications, newest first."""
    apps = await application_store.list_applications(db)
    return [ApplicationOut.model_validate(app) for app in apps]


@router.post("", response_model=ApplicationOut)
async def create_application(body: ApplicationCreate, db: AsyncSession = Depends(get_db)):
    """Create an application at the end of its column and log its CREATED event."""
    app = await application_store.create_application(db, body)
    return ApplicationOut.model_validate(app)


@router.post("/reorder")
async def reorder_column(body: ReorderRequest, db: AsyncSession = Depends(get_db)):
    """Set one column to exactly the given ordering, in a single transaction."""
    await application_store.reorder_column(db, body.status, body.ordered_ids)
    return {"ok": True}


@router.get("/{application_id}", response_model=ApplicationOut)
async def get_application(application_id: int, db: AsyncSession = Depends(get_db)):
    """Get a single application by ID."""
    app = await application_store.get_application(db, application_id)
    return ApplicationOut.model_validate(app)


@router.patch("/{application_id}", response_model=ApplicationOut)
async def update_application(
    application_id: int,
    body: ApplicationUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Update fields on one application. A new status appends it to that column."""
    app = await application_store.update_application(db, application_id, body)
    return ApplicationOut.model_validate(app)


@router.delete("/{application_id}")
async def delete_application(application_id: int, db: AsyncSession = Depends(get_db)):
    """Delete an application and its lifecycle events."""
    return await application_store.delete_application(db, application_id)
