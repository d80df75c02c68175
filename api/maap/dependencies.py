from typing import Generator, Optional
from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from settings.database import get_db
from services.auth import decode_jwt
from models.organization import Organization
from api.maap.domain.viewer import ViewerContext, ANONYMOUS
from api.maap.infra.db.uow import UnitOfWork


# Optional security - doesn't auto-raise 403 when no Bearer token is provided
_optional_security = HTTPBearer(auto_error=False)


def get_uow(db: Session = Depends(get_db)) -> Generator[UnitOfWork, None, None]:
    """
    Dependency to get Unit of Work instance.

    Args:
        db: Database session

    Yields:
        UnitOfWork instance
    """
    uow = UnitOfWork(db)
    try:
        yield uow
    finally:
        pass


def get_viewer(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(_optional_security),
    uow: UnitOfWork = Depends(get_uow),
) -> ViewerContext:
    """
    Resolve the requesting person from an optional Bearer token.

    No token means an anonymous viewer. A token that does not verify, or that
    names a person who no longer exists, is rejected with 401.
    """
    if not credentials:
        return ANONYMOUS

    payload = decode_jwt(credentials.credentials)
    person = uow.people.get_by_id(int(payload["person_id"]))
    if not person:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Person not found for token"
        )
    return ViewerContext(person)


def require_viewer(viewer: ViewerContext = Depends(get_viewer)) -> ViewerContext:
    if not viewer.authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required"
        )
    return viewer


def get_organization(organization_id: int, uow: UnitOfWork = Depends(get_uow)) -> Organization:
    organization = uow.organizations.get_by_id(organization_id)
    if not organization:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Organization {organization_id} not found"
        )
    return organization


def get_request_info(request: Request) -> dict:
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
        "path": request.url.path,
        "method": request.method,
    }
