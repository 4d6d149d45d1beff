"""Catalog router - public service list, staff maintenance"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import require_roles
from ...database import get_db
from ...models import ROLE_ADMIN, ROLE_STAFF, User
from .schemas import PackageResponse, ServiceCreate, ServiceResponse, ServiceUpdate
from .service import CatalogService

router = APIRouter(prefix="/catalog", tags=["Catalog"])

staff_only = require_roles(ROLE_STAFF, ROLE_ADMIN)


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    """Dependency injection for CatalogService"""
    return CatalogService(db)


@router.get("/services", response_model=list[ServiceResponse])
async def list_services(service: CatalogService = Depends(get_catalog_service)):
    return service.list_services()


@router.get("/packages", response_model=list[PackageResponse])
async def list_packages(service: CatalogService = Depends(get_catalog_service)):
    return service.list_packages()


@router.post("/services", response_model=ServiceResponse, status_code=201)
async def create_service(
    data: ServiceCreate,
    current_user: User = Depends(staff_only),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.create_service(data)


@router.put("/services/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: int,
    data: ServiceUpdate,
    current_user: User = Depends(staff_only),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.update_service(service_id, data)
