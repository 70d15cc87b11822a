"""Text generation routes — summary, follow-up email and review for one application."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from jobtracker.clients import limiter
from jobtracker.models.database import get_db
from jobtracker.schemas.pydantic import FollowupOut, GenerateRequest, ReviewOut, SummaryOut
from jobtracker.services import text_generation
from jobtracker.services.application_store import get_application

router = APIRouter(prefix="/api/ai", tags=["ai"])


@router.post("/summary", response_model=SummaryOut)
@limiter.limit("30/hour")
async def generate_summary(
    request: Request,
    body: GenerateRequest,
    db: AsyncSession = Depends(get_db),
):
    """Write a short recruiter-friendly summary; optionally store it on the application."""
    app = await get_application(db, body.application_id)
    return await text_generation.generate_summary(db, app, save=body.save)


@router.post("/followup", response_model=FollowupOut)
@limiter.limit("30/hour")
async def generate_followup(
    request: Request,
    body: GenerateRequest,
    db: AsyncSession = Depends(get_db),
):
    """Draft a follow-up email; optionally store subject and body."""
    app = await get_application(db, body.application_id)
    return await text_generation.generate_followup(db, app, save=body.save)


@router.post("/review", response_model=ReviewOut)
@limiter.limit("30/hour")
async def generate_review(
    request: Request,
    body: GenerateRequest,
    db: AsyncSession = Depends(get_db),
):
    """Structured strengths / risks / next steps review of one application."""
    app = await get_application(db, body.application_id)
    return await text_generation.generate_review(app)
