"""
Agent endpoints: assigned requests, member lookup and case notes
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.schemas import CamelModel
from portal.core.auth import get_client_ip, get_current_user, require_agent_role
from portal.db.session import get_db
from portal.models.enums import AgentRequestStatus
from portal.models.profile import Profile
from portal.services import agent_requests

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/agents", tags=["agents"])


class CaseNotesRequest(CamelModel):
    request_id: UUID
    case_notes: str = Field(..., min_length=1)
    status: Optional[AgentRequestStatus] = None


@router.get("/requests")
async def my_requests(
    status_filter: Optional[AgentRequestStatus] = Query(None, alias="status"),
    current_agent: Profile = Depends(require_agent_role),
    db: AsyncSession = Depends(get_db)
):
    try:
        requests = await agent_requests.list_assigned_requests(
            db, current_agent.id, status_filter.value if status_filter else None
        )
        return {"success": True, "requests": [r.to_dict() for r in requests]}
    except Exception as e:
        logger.error(f"Failed to list requests for agent {current_agent.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to list requests: {str(e)}"}
        )


@router.get("/members/{member_id}")
async def view_member(
    member_id: UUID,
    request: Request,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Member details for admins, or for the agent assigned to one of the member's requests.
    """
    try:
        return {"success": True, **await agent_requests.view_member(
            db, current_user.id, member_id, ip_address=get_client_ip(request)
        )}
    except PermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": str(e)}
        )
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": str(e)}
        )
    except Exception as e:
        logger.error(f"Failed to load member {member_id} for {current_user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to load member: {str(e)}"}
        )


@router.post("/update-case-notes")
async def update_case_notes(
    payload: CaseNotesRequest,
    request: Request,
    current_agent: Profile = Depends(require_agent_role),
    db: AsyncSession = Depends(get_db)
):
    try:
        updated = await agent_requests.update_case_notes(
            db,
            current_agent.id,
            payload.request_id,
            payload.case_notes,
            status=payload.status.value if payload.status else None,
            ip_address=get_client_ip(request)
        )
        await db.commit()
        return {"success": True, "request": updated.to_dict()}
    except PermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": str(e)}
        )
    except LookupError as e:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": str(e)}
        )
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to update case notes on {payload.request_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to update case notes: {str(e)}"}
        )
