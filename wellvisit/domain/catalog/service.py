"""Catalog service - the services and packages patients can book"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from .repository import CatalogRepository
from .schemas import ServiceCreate, ServiceUpdate

logger = logging.getLogger(__name__)

SERVICE_STATUSES = ("active", "inactive")


class CatalogService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = CatalogRepository()

    def list_services(self):
        return self.repo.list_available_services(self.db)

    def list_packages(self):
        return self.repo.list_active_packages(self.db)

    def create_service(self, data: ServiceCreate):
        service = self.repo.create_service(self.db, **data.model_dump(), status="active")
        logger.info(f"✅ Service created: {service.name} ({service.id})")
        return service

    def update_service(self, service_id: int, data: ServiceUpdate):
        service = self.repo.get_service(self.db, service_id)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")
        if data.status is not None and data.status not in SERVICE_STATUSES:
            raise HTTPException(status_code=400, detail=f"status must be one of {', '.join(SERVICE_STATUSES)}")

        service = self.repo.update_service(self.db, service, **data.model_dump(exclude_unset=True))
        logger.info(f"✏️ Service {service.id} updated")
        return service
