from typing import Any, Dict, Optional
from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
import logging

from common.common_utils import success_response
from common.exceptions import FormValidationError
from common.pagination import paginate
from models.organization import Organization
from api.maap.config import maap_config
from api.maap.dependencies import get_organization, get_uow, get_viewer
from api.maap.domain.policies import AuthorizationPolicy, authorize
from api.maap.domain.services.maap_records import MaapRecordKind, MaapRecordService
from api.maap.domain.viewer import ViewerContext
from api.maap.infra.db.uow import UnitOfWork
from api.maap.schemas.maap_records import AbilityResponse, AssignmentResponse, PositionResponse

logger = logging.getLogger(__name__)

maap_records_router = APIRouter(prefix="/organizations/{organization_id}", tags=["MAAP Records"])

RESPONSE_SCHEMAS = {
    MaapRecordKind.ABILITY: AbilityResponse,
    MaapRecordKind.ASSIGNMENT: AssignmentResponse,
    MaapRecordKind.POSITION: PositionResponse,
}


def _serialize(kind: MaapRecordKind, record) -> Dict[str, Any]:
    return RESPONSE_SCHEMAS[kind].model_validate(record).model_dump()


def _form_params(kind: MaapRecordKind, payload: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """The record's attributes live under the singular key, e.g. {"ability": {...}}."""
    if not isinstance(payload, dict):
        return None
    params = payload.get(kind.value)
    if not isinstance(params, dict):
        return None
    params = dict(params)
    if "version_type" not in params and "version_type" in payload:
        params["version_type"] = payload["version_type"]
    return params


def _authorize_view(viewer: ViewerContext, organization: Organization):
    authorize(
        AuthorizationPolicy.can_view_organization(viewer.active_teammate_in(organization)),
        viewer,
        organization,
    )


def _authorize_manage(viewer: ViewerContext, organization: Organization):
    authorize(
        AuthorizationPolicy.can_manage_maap(viewer.active_teammate_in(organization)),
        viewer,
        organization,
        message="You are not authorized to manage MAAP records.",
    )


def list_records(kind: MaapRecordKind, organization: Organization, viewer: ViewerContext, uow: UnitOfWork,
                 name: Optional[str], major_version: Optional[str], sort: Optional[str],
                 direction: Optional[str], page: int, page_size: int):
    _authorize_view(viewer, organization)
    company = organization.root_company()
    service = MaapRecordService(uow, kind)
    try:
        result = paginate(
            service.list(company.id, name=name, major_version=major_version, sort=sort, direction=direction),
            page=page,
            page_size=min(page_size, maap_config.max_page_size),
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    data = result.model_dump(exclude={"items"})
    data["items"] = [_serialize(kind, record) for record in result.items]
    return success_response(data)


def show_record(kind: MaapRecordKind, record_id: int, organization: Organization, viewer: ViewerContext,
                uow: UnitOfWork):
    _authorize_view(viewer, organization)
    try:
        record = MaapRecordService(uow, kind).get(record_id, organization.root_company().id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return success_response(_serialize(kind, record))


def create_record(kind: MaapRecordKind, payload: Optional[Dict[str, Any]], organization: Organization,
                  viewer: ViewerContext, uow: UnitOfWork):
    _authorize_manage(viewer, organization)
    try:
        record = MaapRecordService(uow, kind).create(
            organization.root_company(), _form_params(kind, payload), actor_email=viewer.person.email
        )
    except FormValidationError:
        uow.rollback()
        raise
    except Exception as e:
        uow.rollback()
        logger.error(f"Error creating {kind.value}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create {kind.value}"
        )
    return success_response(_serialize(kind, record), status_code=status.HTTP_201_CREATED)


def update_record(kind: MaapRecordKind, record_id: int, payload: Optional[Dict[str, Any]],
                  organization: Organization, viewer: ViewerContext, uow: UnitOfWork):
    _authorize_manage(viewer, organization)
    service = MaapRecordService(uow, kind)
    try:
        record = service.get(record_id, organization.root_company().id)
        record = service.update(record, _form_params(kind, payload), actor_email=viewer.person.email)
    except FormValidationError:
        uow.rollback()
        raise
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        uow.rollback()
        logger.error(f"Error updating {kind.value} {record_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update {kind.value}"
        )
    return success_response(_serialize(kind, record))


def _register(kind: MaapRecordKind, collection: str):
    """Wire list/create/show/update for one record kind."""

    @maap_records_router.get(f"/{collection}", name=f"list_{collection}")
    async def list_endpoint(
        name: Optional[str] = Query(None, description="Case-insensitive name/title substring"),
        major_version: Optional[str] = Query(None, description="Only versions N.x.y"),
        sort: Optional[str] = Query(None, description="name, version, created_at or created_at_asc"),
        direction: Optional[str] = Query(None, description="asc or desc for name sort"),
        page: int = Query(1, ge=1),
        page_size: int = Query(maap_config.default_page_size, ge=1),
        organization: Organization = Depends(get_organization),
        viewer: ViewerContext = Depends(get_viewer),
        uow: UnitOfWork = Depends(get_uow),
    ):
        return list_records(kind, organization, viewer, uow, name, major_version, sort, direction, page, page_size)

    @maap_records_router.post(f"/{collection}", name=f"create_{kind.value}", status_code=status.HTTP_201_CREATED)
    async def create_endpoint(
        payload: Optional[Dict[str, Any]] = Body(default=None),
        organization: Organization = Depends(get_organization),
        viewer: ViewerContext = Depends(get_viewer),
        uow: UnitOfWork = Depends(get_uow),
    ):
        return create_record(kind, payload, organization, viewer, uow)

    @maap_records_router.get(f"/{collection}/{{record_id}}", name=f"show_{kind.value}")
    async def show_endpoint(
        record_id: int,
        organization: Organization = Depends(get_organization),
        viewer: ViewerContext = Depends(get_viewer),
        uow: UnitOfWork = Depends(get_uow),
    ):
        return show_record(kind, record_id, organization, viewer, uow)

    @maap_records_router.patch(f"/{collection}/{{record_id}}", name=f"update_{kind.value}")
    async def update_endpoint(
        record_id: int,
        payload: Optional[Dict[str, Any]] = Body(default=None),
        organization: Organization = Depends(get_organization),
        viewer: ViewerContext = Depends(get_viewer),
        uow: UnitOfWork = Depends(get_uow),
    ):
        return update_record(kind, record_id, payload, organization, viewer, uow)


_register(MaapRecordKind.ABILITY, "abilities")
_register(MaapRecordKind.ASSIGNMENT, "assignments")
_register(MaapRecordKind.POSITION, "positions")
