from __future__ import annotations

from fastapi import Depends
from sqlalchemy.orm import Session

from procarni.db import get_db
from procarni.services.delivery import DeliveryOrchestrator
from procarni.services.publisher import Publisher, PublisherCredential, get_publisher_credential


def get_publisher(
    credential: PublisherCredential = Depends(get_publisher_credential),
    db: Session = Depends(get_db),
) -> Publisher:
    """Publisher bound to the request's session and the service storage identity."""
    return Publisher(credential, db)


def get_delivery_orchestrator(
    db: Session = Depends(get_db),
    publisher: Publisher = Depends(get_publisher),
) -> DeliveryOrchestrator:
    return DeliveryOrchestrator(db, publisher)
