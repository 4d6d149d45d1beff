"""Catalog repository - clinic services and packages"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Service, ServicePackage


class CatalogRepository:
    """Repository for catalog database operations"""

    @staticmethod
    def list_available_services(db: Session) -> list[Service]:
        return (
            db.query(Service)
            .filter(Service.is_available.is_(True), Service.status == "active")
            .order_by(Service.display_order.asc(), Service.name.asc())
            .all()
        )

    @staticmethod
    def list_active_packages(db: Session) -> list[ServicePackage]:
        return (
            db.query(ServicePackage)
            .filter(ServicePackage.is_active.is_(True))
            .order_by(ServicePackage.popular.desc(), ServicePackage.package_price.asc())
            .all()
        )

    @staticmethod
    def get_service(db: Session, service_id: int) -> Optional[Service]:
        return db.query(Service).filter(Service.id == service_id).first()

    @staticmethod
    def create_service(db: Session, **fields) -> Service:
        service = Service(**fields)
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def update_service(db: Session, service: Service, **updates) -> Service:
        for key, value in updates.items():
            if value is not None and hasattr(service, key):
                setattr(service, key, value)
        db.commit()
        db.refresh(service)
        return service
