from datetime import date
from typing import Any, Dict
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
import logging

from common.common_utils import success_response
from common.exceptions import NotAuthorizedError
from common.pagination import paginate
from models.observations import Observation, PrivacyLevel, PUBLIC_PRIVACY_LEVELS
from models.organization import Organization
from api.maap.config import Constants, maap_config
from api.maap.dependencies import get_organization, get_uow, get_viewer, require_viewer
from api.maap.domain.queries.observation_visibility import ObservationVisibilityQuery
from api.maap.domain.queries.observations_query import ObservationsQuery
from api.maap.domain.services.observation_custodian import ObservationCustodian
from api.maap.domain.viewer import ViewerContext
from api.maap.infra.db.uow import UnitOfWork
from api.maap.schemas.observations import ObservationResponse, ObservationListResponse

logger = logging.getLogger(__name__)

observations_router = APIRouter(prefix="/organizations/{organization_id}/observations", tags=["Observations"])
kudos_router = APIRouter(prefix="/organizations/{organization_id}/kudos", tags=["Kudos"])

MULTI_VALUE_PARAMS = ("privacy", "observee_ids")
PAGING_PARAMS = ("page", "page_size")


def feed_params(request: Request) -> Dict[str, Any]:
    """Flatten query params; privacy and observee_ids may repeat (also as `privacy[]`)."""
    params: Dict[str, Any] = {}
    for key, value in request.query_params.multi_items():
        key = key[:-2] if key.endswith("[]") else key
        if key in PAGING_PARAMS:
            continue
        if key in MULTI_VALUE_PARAMS:
            params.setdefault(key, []).append(value)
        else:
            params[key] = value
    return params


def _render_feed(query: ObservationsQuery, sorted_query, visibility: ObservationVisibilityQuery,
                 page: int, page_size: int):
    try:
        result = paginate(sorted_query, page=page, page_size=min(page_size, maap_config.max_page_size))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    response = ObservationListResponse(
        observations=[
            ObservationResponse.from_observation(
                observation, include_negative_ratings=visibility.can_view_negative_ratings(observation)
            )
            for observation in result.items
        ],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages,
        has_next=result.has_next,
        has_prev=result.has_prev,
        current_filters=query.current_filters,
        current_sort=query.current_sort,
        current_view=query.current_view,
        current_spotlight=query.current_spotlight,
        has_active_filters=query.has_active_filters,
        spotlight_stats=query.spotlight_stats(),
    )
    return success_response(response.model_dump())


@observations_router.get("", status_code=status.HTTP_200_OK)
async def list_observations(
    request: Request,
    page: int = Query(1, ge=1),
    page_size: int = Query(maap_config.default_page_size, ge=1),
    organization: Organization = Depends(get_organization),
    viewer: ViewerContext = Depends(require_viewer),
    uow: UnitOfWork = Depends(get_uow),
):
    """
    Observation feed.

    Filters: timeframe (+ timeframe_start_date/timeframe_end_date for
    `between`), privacy, rateable_type + rateable_id, observee_ids,
    start_date/end_date, include_soft_deleted. Also sort, view (or viewStyle),
    spotlight and preset (`kudos`).
    """
    query = ObservationsQuery(uow, viewer, organization, feed_params(request))
    return _render_feed(query, query.call(), query.visibility, page, page_size)


@observations_router.get("/{observation_id}", status_code=status.HTTP_200_OK)
async def show_observation(
    observation_id: int,
    organization: Organization = Depends(get_organization),
    viewer: ViewerContext = Depends(get_viewer),
    uow: UnitOfWork = Depends(get_uow),
):
    """Show one observation; viewers who may not see it are redirected."""
    company = organization.root_company()
    observation = uow.observations.get_by_id(observation_id, company.id)
    if not observation:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Observation {observation_id} not found"
        )

    visibility = ObservationVisibilityQuery(uow, viewer, company)
    if not visibility.can_view(observation):
        reason = visibility.denial_reason(observation)
        logger.info(
            f"Observation view denied: observation_id={observation_id}, "
            f"person_id={viewer.person_id}, reason={reason}"
        )
        raise NotAuthorizedError(
            message=Constants.OBSERVATION_NOT_VISIBLE_ALERT,
            redirect_to=visibility.denial_redirect_path(observation),
            reason=reason,
        )

    return success_response(ObservationResponse.from_observation(
        observation, include_negative_ratings=visibility.can_view_negative_ratings(observation)
    ).model_dump())


def _custodian_action(action: str, observation_id: int, organization: Organization,
                      viewer: ViewerContext, uow: UnitOfWork):
    custodian = ObservationCustodian(uow, viewer, organization)
    try:
        observation = getattr(custodian, action)(observation_id)
    except (HTTPException, NotAuthorizedError):
        raise
    except ValueError as e:
        logger.error(f"Error during observation {action}: {str(e)}")
        if "not found" in str(e).lower():
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        uow.rollback()
        logger.error(f"Error during observation {action}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {action.replace('_', ' ')} observation"
        )
    return success_response(ObservationResponse.from_observation(observation).model_dump())


@observations_router.post("/{observation_id}/publish", status_code=status.HTTP_200_OK)
async def publish_observation(
    observation_id: int,
    organization: Organization = Depends(get_organization),
    viewer: ViewerContext = Depends(require_viewer),
    uow: UnitOfWork = Depends(get_uow),
):
    """Publish a draft. Public-to-world observations with negative ratings are narrowed."""
    return _custodian_action("publish", observation_id, organization, viewer, uow)


@observations_router.delete("/{observation_id}", status_code=status.HTTP_200_OK)
async def delete_observation(
    observation_id: int,
    organization: Organization = Depends(get_organization),
    viewer: ViewerContext = Depends(require_viewer),
    uow: UnitOfWork = Depends(get_uow),
):
    """Soft delete (sets deleted_at)."""
    return _custodian_action("soft_delete", observation_id, organization, viewer, uow)


@observations_router.post("/{observation_id}/restore", status_code=status.HTTP_200_OK)
async def restore_observation(
    observation_id: int,
    organization: Organization = Depends(get_organization),
    viewer: ViewerContext = Depends(require_viewer),
    uow: UnitOfWork = Depends(get_uow),
):
    return _custodian_action("restore", observation_id, organization, viewer, uow)


def _kudos_levels(viewer: ViewerContext, company: Organization):
    if viewer.active_teammate_in(company) is not None:
        return list(PUBLIC_PRIVACY_LEVELS)
    return [PrivacyLevel.PUBLIC_TO_WORLD]


@kudos_router.get("", status_code=status.HTTP_200_OK)
async def list_kudos(
    request: Request,
    page: int = Query(1, ge=1),
    page_size: int = Query(maap_config.default_page_size, ge=1),
    organization: Organization = Depends(get_organization),
    viewer: ViewerContext = Depends(get_viewer),
    uow: UnitOfWork = Depends(get_uow),
):
    """Published public observations; public_to_company only for active members."""
    company = organization.root_company()
    params = feed_params(request)
    params["privacy"] = [level.value for level in _kudos_levels(viewer, company)]
    params.pop("include_soft_deleted", None)
    params.pop("preset", None)

    query = ObservationsQuery(uow, viewer, company, params)
    sorted_query = query.call().filter(Observation.published_at.isnot(None))
    return _render_feed(query, sorted_query, query.visibility, page, page_size)


@kudos_router.get("/{observed_on}/{observation_id}", status_code=status.HTTP_200_OK)
async def kudos_permalink(
    observed_on: date,
    observation_id: int,
    organization: Organization = Depends(get_organization),
    viewer: ViewerContext = Depends(get_viewer),
    uow: UnitOfWork = Depends(get_uow),
):
    company = organization.root_company()
    observation = uow.observations.get_by_id(observation_id, company.id)
    if not observation or observation.observed_at.date() != observed_on:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Observation {observation_id} not found"
        )

    visibility = ObservationVisibilityQuery(uow, viewer, company)
    public = (
        not observation.draft
        and not observation.soft_deleted
        and observation.privacy_level in _kudos_levels(viewer, company)
    )
    if not (public or visibility.can_view(observation)):
        raise NotAuthorizedError(
            message=Constants.OBSERVATION_NOT_VISIBLE_ALERT,
            redirect_to=viewer.dashboard_path(company),
            reason=visibility.denial_reason(observation),
        )

    return success_response(ObservationResponse.from_observation(
        observation, include_negative_ratings=visibility.can_view_negative_ratings(observation)
    ).model_dump())
