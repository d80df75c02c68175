"""
Main router for the MAAP API.

Combines the MAAP record, check-in and observation routes into a single
router that the FastAPI application includes.
"""
from fastapi import APIRouter

from api.maap.api.routes_maap_records import maap_records_router
from api.maap.api.routes_check_ins import check_ins_router
from api.maap.api.routes_observations import observations_router, kudos_router

maap_router = APIRouter()

maap_router.include_router(maap_records_router)
maap_router.include_router(check_ins_router)
maap_router.include_router(observations_router)
maap_router.include_router(kudos_router)

__all__ = ["maap_router", "maap_records_router", "check_ins_router", "observations_router", "kudos_router"]
