# procarni/services/publisher.py
from __future__ import annotations

import base64
import binascii
import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from procarni.core.errors import PublishError, ValidationError
from procarni.core.logging_config import logger
from procarni.core.settings import Settings, settings
from procarni.export.filenames import safe_filename
from procarni.models import StoredDocument
from procarni.observability.metrics import documents_published_total
from procarni.services.artifacts import GeneratedArtifact, PublishedArtifact
from procarni.services.storage import ObjectStore, build_object_store

_DATA_URL_PREFIX = re.compile(r"^data:[^;,]*;base64,", re.IGNORECASE)


@dataclass(frozen=True)
class PublisherCredential:
    """
    Storage identity used for writes. It is separate from the caller's
    identity: the caller is authenticated by bearer token, the publisher
    writes with these credentials.
    """

    backend: str = "local"
    bucket: Optional[str] = None
    region: str = "us-east-1"
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    endpoint_url: Optional[str] = None
    public_base_url: Optional[str] = None
    local_root: str = "./.local_storage"
    connect_timeout: int = 3
    read_timeout: int = 30

    @classmethod
    def from_settings(cls, s: Settings) -> "PublisherCredential":
        return cls(
            backend=s.PUBLISHER_BACKEND,
            bucket=s.PUBLISHER_BUCKET,
            region=s.PUBLISHER_REGION,
            access_key_id=s.PUBLISHER_ACCESS_KEY_ID,
            secret_access_key=s.PUBLISHER_SECRET_ACCESS_KEY,
            endpoint_url=s.PUBLISHER_ENDPOINT_URL,
            public_base_url=s.PUBLISHER_PUBLIC_BASE_URL,
            local_root=s.LOCAL_STORAGE_ROOT,
            connect_timeout=s.STORAGE_CONNECT_TIMEOUT,
            read_timeout=s.STORAGE_READ_TIMEOUT,
        )


def get_publisher_credential() -> PublisherCredential:
    """FastAPI dependency; tests override it with a tmp_path rooted local credential."""
    return PublisherCredential.from_settings(settings)


def build_storage_key(owner_id: str, filename: str, now: Optional[datetime] = None) -> str:
    """<owner>/<timestamp>_<random>_<filename>, unique per call."""
    now = now or datetime.now(timezone.utc)
    stamp = now.strftime("%Y%m%dT%H%M%S%f")
    return f"{owner_id}/{stamp}_{secrets.token_hex(4)}_{safe_filename(filename)}"


def decode_base64_payload(data: str) -> bytes:
    """Decode a base64 string, with or without a data: URL prefix."""
    raw = _DATA_URL_PREFIX.sub("", (data or "").strip(), count=1)
    raw = "".join(raw.split())
    if not raw:
        raise ValidationError("El contenido del archivo está vacío.", fields=["base64Data"])
    try:
        return base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError(
            "El contenido del archivo no es base64 válido.", fields=["base64Data"]
        ) from exc


class Publisher:
    """Writes artifacts to object storage and records their metadata."""

    def __init__(self, credential: PublisherCredential, db: Session, store: Optional[ObjectStore] = None):
        self.credential = credential
        self.db = db
        self.store = store or build_object_store(credential)

    def publish(
        self,
        artifact: GeneratedArtifact,
        owner_id: str,
        document_type: Optional[str] = None,
    ) -> PublishedArtifact:
        key = build_storage_key(owner_id, artifact.filename)
        log = logger.bind(key=key, owner_id=owner_id, document_type=document_type)

        # 1) object first; a failure here leaves no metadata behind
        try:
            self.store.put_new(key, artifact.content, artifact.mime_type)
        except PublishError:
            documents_published_total.labels(result="storage_error").inc()
            raise

        public_url = self.store.public_url(key)

        # 2) metadata row
        doc = StoredDocument(
            owner_id=owner_id,
            storage_key=key,
            filename=artifact.filename,
            mime_type=artifact.mime_type,
            size_bytes=artifact.size,
            public_url=public_url,
            document_type=document_type,
        )
        try:
            self.db.add(doc)
            self.db.commit()
            self.db.refresh(doc)
        except SQLAlchemyError as exc:
            self.db.rollback()
            documents_published_total.labels(result="metadata_error").inc()
            # object stays in storage without a metadata row
            log.warning("storage_object_orphaned", error=str(exc))
            raise PublishError(
                "El archivo se subió pero no se pudo registrar.", key=key
            ) from exc

        documents_published_total.labels(result="success").inc()
        log.info("document_published", size=artifact.size)

        return PublishedArtifact(
            key=key,
            public_url=public_url,
            filename=artifact.filename,
            mime_type=artifact.mime_type,
            size_bytes=artifact.size,
            document_id=doc.id,
        )
