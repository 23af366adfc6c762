"""Admin API v1 endpoints."""

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from partner_portal.admin.aggregation import aggregation_service
from partner_portal.admin.workflow import status_workflow
from partner_portal.auth.identity import IdentityProvider
from partner_portal.auth.middleware import get_identity_provider, require_admin, require_role
from partner_portal.auth.models import Caller
from partner_portal.raffles.schemas import CreateRaffleRequest
from partner_portal.raffles.service import raffle_service
from partner_portal.referral.schemas import AdminSubmissionRequest, SubmissionUpdateRequest
from partner_portal.referral.service import submission_service

router = APIRouter(prefix="/admin", tags=["admin"])


# ==================== MODELS ====================


class UpdatePointsRequest(BaseModel):
    """Absolute ``points`` or signed ``delta``."""
    points: int | None = None
    delta: int | None = None


# ==================== SUBMISSIONS ====================


@router.get("/submissions")
async def list_submissions(
    status_filter: str | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    caller: Caller = Depends(require_role),
):
    """Page through submissions; non-admins only see their partner's."""
    return submission_service.list_submissions(caller, status_filter, limit=limit, offset=offset)


@router.post("/submissions", status_code=status.HTTP_201_CREATED)
async def create_submission(body: AdminSubmissionRequest, caller: Caller = Depends(require_admin)):
    """Enter a submission on behalf of a user, crediting their points."""
    data = submission_service.submit_as_admin(body, caller)
    return {"data": data}


@router.get("/submissions/{submission_id}")
async def get_submission(submission_id: str, caller: Caller = Depends(require_role)):
    """One submission with its partner."""
    return {"data": submission_service.get_submission(submission_id, caller)}


@router.patch("/submissions/{submission_id}")
async def update_submission(
    submission_id: str,
    body: SubmissionUpdateRequest,
    caller: Caller = Depends(require_admin),
):
    """Change status, notes, value or lead details of a submission."""
    data = status_workflow.update_submission(
        caller, submission_id, body.model_dump(exclude_unset=True)
    )
    return {"success": True, "data": data}


# ==================== DASHBOARD & USERS ====================


@router.get("/dashboard")
async def get_dashboard(caller: Caller = Depends(require_admin)):
    """Submission, revenue and partner rollups."""
    return aggregation_service.get_dashboard_summary(caller)


@router.get("/users-with-submissions")
async def users_with_submissions(
    caller: Caller = Depends(require_admin),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    """Submissions grouped by submitting user."""
    return await aggregation_service.get_users_with_submissions(caller, provider)


@router.get("/users/{user_id}")
async def get_user(
    user_id: str,
    caller: Caller = Depends(require_admin),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    """A user's email, points and submissions."""
    return await aggregation_service.get_user_detail(caller, user_id, provider)


@router.patch("/users/{user_id}")
async def update_user_points(
    user_id: str,
    body: UpdatePointsRequest,
    caller: Caller = Depends(require_admin),
):
    """Set or adjust a user's points."""
    result = status_workflow.update_points(caller, user_id, points=body.points, delta=body.delta)
    return {"success": True, "points": result["points"]}


# ==================== RAFFLES ====================


@router.get("/raffles")
async def list_raffles(caller: Caller = Depends(require_admin)):
    """Every raffle with its entry count."""
    return {"raffles": raffle_service.list_raffles(caller)}


@router.post("/raffles")
async def create_raffle(body: CreateRaffleRequest, caller: Caller = Depends(require_admin)):
    """Create a raffle."""
    return {"raffle": raffle_service.create_raffle(caller, body)}
