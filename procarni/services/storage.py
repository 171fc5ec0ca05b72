# procarni/services/storage.py
from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from procarni.core.errors import PublishError
from procarni.core.logging_config import logger

if TYPE_CHECKING:
    from procarni.services.publisher import PublisherCredential


# =========================
# Abstract store
# =========================
class ObjectStore(ABC):
    """Append-only object store: keys are written once and never overwritten."""

    @abstractmethod
    def put_new(self, key: str, data: bytes, content_type: str) -> None:
        """Write `data` under `key`. Raises PublishError if the key already exists."""

    @abstractmethod
    def public_url(self, key: str) -> str:
        """Durable URL a recipient can open without credentials."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        ...


# =========================
# Local store
# =========================
class LocalObjectStore(ObjectStore):
    """Filesystem store, used in development and tests."""

    def __init__(self, root: str, public_base_url: Optional[str] = None):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url

    def _full_path(self, key: str) -> Path:
        if key.startswith("/") or ".." in key.split("/"):
            raise PublishError("Ruta de almacenamiento inválida.", key=key)
        return self.root / key

    def put_new(self, key: str, data: bytes, content_type: str) -> None:
        path = self._full_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            # "x": fails if the file is already there
            with open(path, "xb") as f:
                f.write(data)
        except FileExistsError as exc:
            logger.bind(key=key).error("storage_key_exists")
            raise PublishError("El archivo ya existe en el almacenamiento.", key=key) from exc
        except OSError as exc:
            logger.bind(key=key).error("storage_write_failed", error=str(exc))
            raise PublishError("No se pudo guardar el archivo.", key=key) from exc
        logger.bind(key=key, size=len(data), content_type=content_type).info("storage_object_written")

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        return self._full_path(key).resolve().as_uri()

    def exists(self, key: str) -> bool:
        return self._full_path(key).is_file()


# =========================
# S3 store
# =========================
class S3ObjectStore(ObjectStore):
    """S3 (or S3-compatible) store with conditional writes."""

    def __init__(
        self,
        bucket: str,
        region: str,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        public_base_url: Optional[str] = None,
        connect_timeout: int = 3,
        read_timeout: int = 30,
        client=None,
    ):
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url
        self.public_base_url = public_base_url

        if client is not None:
            self.s3 = client
            return

        session_kwargs = {}
        if aws_access_key_id and aws_secret_access_key:
            session_kwargs.update(
                aws_access_key_id=aws_access_key_id,
                aws_secret_access_key=aws_secret_access_key,
            )

        self.s3 = boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
            config=Config(
                retries={"max_attempts": 3, "mode": "standard"},
                connect_timeout=connect_timeout,
                read_timeout=read_timeout,
                s3={"addressing_style": "virtual"},
            ),
            **session_kwargs,
        )

    def put_new(self, key: str, data: bytes, content_type: str) -> None:
        log = logger.bind(bucket=self.bucket, key=key)
        try:
            self.s3.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                IfNoneMatch="*",
            )
        except ClientError as exc:
            err = exc.response.get("Error", {}) or {}
            code = err.get("Code", "")
            log.error("storage_put_failed", aws_code=code, error=err.get("Message") or str(exc))
            if code in {"PreconditionFailed", "ConditionalRequestConflict"}:
                raise PublishError("El archivo ya existe en el almacenamiento.", key=key) from exc
            if code in {"RequestTimeout", "SlowDown"}:
                raise PublishError(
                    "Tiempo de espera agotado al subir el archivo.", code="publish_timeout", key=key
                ) from exc
            raise PublishError("No se pudo subir el archivo.", key=key) from exc
        except (ConnectTimeoutError, ReadTimeoutError, EndpointConnectionError) as exc:
            log.error("storage_put_timeout", error=str(exc))
            raise PublishError(
                "Tiempo de espera agotado al subir el archivo.", code="publish_timeout", key=key
            ) from exc
        except BotoCoreError as exc:
            log.error("storage_put_failed", error=str(exc))
            raise PublishError("No se pudo subir el archivo.", key=key) from exc

        log.bind(size=len(data), content_type=content_type).info("storage_object_written")

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def exists(self, key: str) -> bool:
        try:
            self.s3.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code in {"404", "NoSuchKey", "NotFound"}:
                return False
            raise PublishError("No se pudo consultar el almacenamiento.", key=key) from exc


# =========================
# Factory
# =========================
def build_object_store(credential: "PublisherCredential") -> ObjectStore:
    """Pick the backend named by the publisher credential."""
    backend = credential.backend.lower()

    if backend == "s3":
        if not credential.bucket:
            raise PublishError("Almacenamiento no configurado: falta PUBLISHER_BUCKET.")
        return S3ObjectStore(
            bucket=credential.bucket,
            region=credential.region,
            aws_access_key_id=credential.access_key_id,
            aws_secret_access_key=credential.secret_access_key,
            endpoint_url=credential.endpoint_url,
            public_base_url=credential.public_base_url,
            connect_timeout=credential.connect_timeout,
            read_timeout=credential.read_timeout,
        )

    if backend == "local":
        return LocalObjectStore(root=credential.local_root, public_base_url=credential.public_base_url)

    raise PublishError(f"Backend de almacenamiento desconocido: {credential.backend}")
