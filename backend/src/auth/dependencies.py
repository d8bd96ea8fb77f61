"""
Request context dependencies for FastAPI.

Every planner request is scoped to one organization. The organization is
taken from the X-Organization-Id header; all queries filter on it.
"""

import logging
from typing import Optional

from fastapi import Header, HTTPException, status

from core.constants import MAX_STRING_LENGTH, ORGANIZATION_HEADER

logger = logging.getLogger(__name__)


class OrganizationContext:
    """Organization the current request acts on."""

    def __init__(self, org_id: str):
        self.org_id = org_id

    def __repr__(self) -> str:
        return f"OrganizationContext(org_id='{self.org_id}')"


def require_organization(
    x_organization_id: Optional[str] = Header(default=None, alias=ORGANIZATION_HEADER)
) -> OrganizationContext:
    """Resolve the organization of the request from its header."""
    if x_organization_id is None or not x_organization_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Organization header not provided"
        )

    org_id = x_organization_id.strip()
    if len(org_id) > MAX_STRING_LENGTH:
        logger.warning("Rejected request with an oversized organization header")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid organization"
        )
    return OrganizationContext(org_id)
