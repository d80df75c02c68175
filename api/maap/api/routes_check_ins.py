from typing import Any, Dict, Optional
from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
import logging

from common.common_utils import failure_response, success_response
from common.exceptions import FormValidationError, InvalidEnumValueError, NotAuthorizedError
from models.check_ins import AssignmentCheckIn, AspirationCheckIn, PositionCheckIn
from models.organization import Organization, Teammate
from api.maap.config import Constants
from api.maap.dependencies import get_organization, get_request_info, get_uow, require_viewer
from api.maap.domain.policies import AuthorizationPolicy, authorize
from api.maap.domain.services.check_in_finalization import CheckInFinalizationService, FinalizationParams
from api.maap.domain.services.check_in_updates import CheckInUpdateService
from api.maap.domain.viewer import ViewerContext
from api.maap.infra.db.uow import UnitOfWork
from api.maap.schemas.check_ins import (
    AssignmentCheckInResponse,
    AspirationCheckInResponse,
    PositionCheckInResponse,
    ReadyForFinalizationResponse,
    FinalizationResponse,
    MaapSnapshotResponse,
)

logger = logging.getLogger(__name__)

check_ins_router = APIRouter(prefix="/organizations/{organization_id}", tags=["Check-ins"])

CHECK_IN_SCHEMAS = {
    AssignmentCheckIn: AssignmentCheckInResponse,
    AspirationCheckIn: AspirationCheckInResponse,
    PositionCheckIn: PositionCheckInResponse,
}


def _load_teammate(uow: UnitOfWork, organization: Organization, teammate_id: int) -> Teammate:
    company = organization.root_company()
    teammate = uow.teammates.get_by_id(teammate_id, company.self_and_descendant_ids())
    if not teammate:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Teammate {teammate_id} not found"
        )
    return teammate


def _serialize_check_in(check_in) -> Dict[str, Any]:
    return CHECK_IN_SCHEMAS[type(check_in)].model_validate(check_in).model_dump()


@check_ins_router.patch("/teammates/{teammate_id}/check_ins", status_code=status.HTTP_200_OK)
async def update_check_ins(
    teammate_id: int,
    payload: Optional[Dict[str, Any]] = Body(default=None),
    organization: Organization = Depends(get_organization),
    viewer: ViewerContext = Depends(require_viewer),
    uow: UnitOfWork = Depends(get_uow),
):
    """
    Save employee-side or manager-side check-in fields.

    Accepts `assignment_check_ins`, `aspiration_check_ins` and
    `position_check_in`, each also under its legacy bracketed key
    (e.g. `[assignment_check_ins]`). The side is derived from the viewer.
    """
    teammate = _load_teammate(uow, organization, teammate_id)
    params = (payload or {}).get("check_ins") or payload or {}

    try:
        service = CheckInUpdateService(uow, viewer, organization, teammate)
        updated = service.call(params)
    except (HTTPException, NotAuthorizedError, FormValidationError, InvalidEnumValueError):
        raise
    except ValueError as e:
        logger.error(f"Error saving check-ins: {str(e)}")
        if "not found" in str(e).lower():
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error saving check-ins: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save check-ins"
        )

    return success_response({
        "side": service.side,
        "check_ins": [_serialize_check_in(check_in) for check_in in updated],
    })


@check_ins_router.get("/teammates/{teammate_id}/finalization", status_code=status.HTTP_200_OK)
async def ready_for_finalization(
    teammate_id: int,
    organization: Organization = Depends(get_organization),
    viewer: ViewerContext = Depends(require_viewer),
    uow: UnitOfWork = Depends(get_uow),
):
    """List the teammate's check-ins that both sides have completed and that are still open."""
    teammate = _load_teammate(uow, organization, teammate_id)
    authorize(
        AuthorizationPolicy.can_view_check_ins(viewer, viewer.active_teammate_in(organization), teammate),
        viewer,
        organization,
        message="You are not authorized to view these check-ins.",
    )

    response = ReadyForFinalizationResponse(
        teammate_id=teammate.id,
        position_check_ins=[
            PositionCheckInResponse.model_validate(check_in)
            for check_in in uow.check_ins.ready_for_finalization(PositionCheckIn, teammate.id)
        ],
        assignment_check_ins=[
            AssignmentCheckInResponse.model_validate(check_in)
            for check_in in uow.check_ins.ready_for_finalization(AssignmentCheckIn, teammate.id)
        ],
        aspiration_check_ins=[
            AspirationCheckInResponse.model_validate(check_in)
            for check_in in uow.check_ins.ready_for_finalization(AspirationCheckIn, teammate.id)
        ],
    )
    return success_response(response.model_dump())


@check_ins_router.post("/teammates/{teammate_id}/finalization", status_code=status.HTTP_200_OK)
async def finalize_check_ins(
    teammate_id: int,
    request: Request,
    payload: Optional[Dict[str, Any]] = Body(default=None),
    organization: Organization = Depends(get_organization),
    viewer: ViewerContext = Depends(require_viewer),
    uow: UnitOfWork = Depends(get_uow),
):
    """
    Finalize the selected check-ins into one MAAP snapshot.

    On success the envelope carries `redirect_to` pointing at the completion
    page; on failure (422) it points back at the finalization form with an
    `alert`.
    """
    teammate = _load_teammate(uow, organization, teammate_id)
    authorize(
        AuthorizationPolicy.can_finalize(viewer.active_teammate_in(organization), teammate),
        viewer,
        organization,
        message="You are not authorized to finalize these check-ins.",
    )

    result = CheckInFinalizationService(
        uow=uow,
        teammate=teammate,
        finalization_params=FinalizationParams.parse(payload),
        finalized_by=viewer.person,
        request_info=get_request_info(request),
    ).call()

    if not result.is_ok:
        response = FinalizationResponse(
            redirect_to=Constants.finalization_path(organization.id, teammate.id),
            alert=result.error,
        )
        return failure_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            [result.error],
            data=response.model_dump(),
            headers={Constants.FLASH_ALERT_HEADER: result.error},
        )

    snapshot = result.value["snapshot"]

    response = FinalizationResponse(
        redirect_to=Constants.finalization_complete_path(organization.id, teammate.id, snapshot.id),
        snapshot_id=snapshot.id,
        notice=Constants.FINALIZATION_SUCCESS_NOTICE,
    )
    return success_response(response.model_dump())


@check_ins_router.get("/snapshots/{snapshot_id}", status_code=status.HTTP_200_OK)
async def show_snapshot(
    snapshot_id: int,
    organization: Organization = Depends(get_organization),
    viewer: ViewerContext = Depends(require_viewer),
    uow: UnitOfWork = Depends(get_uow),
):
    snapshot = uow.snapshots.get_by_id(snapshot_id, organization.root_company().id)
    if not snapshot:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Snapshot {snapshot_id} not found"
        )

    employee_teammate = snapshot.employee.teammate_for(organization)
    viewer_teammate = viewer.active_teammate_in(organization)
    allowed = (
        viewer.person_id == snapshot.employee_id
        or (employee_teammate is not None
            and AuthorizationPolicy.is_manager_side(viewer_teammate, employee_teammate))
    )
    authorize(allowed, viewer, organization, message="You are not authorized to view this snapshot.")

    return success_response(MaapSnapshotResponse.model_validate(snapshot).model_dump())
