from fastapi import APIRouter

from services.dashboard_service import get_dashboard_counters
from .agents import router as agents_router
from .audit import router as audit_router
from .bookings import router as bookings_router
from .clients import router as clients_router
from .commissions import router as commissions_router
from .imports import router as imports_router
from .reference import location_tags_router, service_types_router, tags_router
from .trips import router as trips_router
from .vendors import router as vendors_router

router = APIRouter()
router.include_router(clients_router)
router.include_router(vendors_router)
router.include_router(bookings_router)
router.include_router(trips_router)
router.include_router(service_types_router)
router.include_router(tags_router)
router.include_router(location_tags_router)
router.include_router(agents_router)
router.include_router(commissions_router)
router.include_router(imports_router)
router.include_router(audit_router)


@router.get("/status")
def status():
    return {"status": "ok", "counters": get_dashboard_counters()["entities"]}
