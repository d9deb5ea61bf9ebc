"""
Backends de almacenamiento para documentos de factura

- LocalInvoiceStorage: archivos en INVOICES_DIR, servidos por el mount
  estático /invoices
- MinIOInvoiceStorage: objetos en un bucket de MinIO, servidos con URLs firmadas
"""
from datetime import timedelta
from functools import lru_cache
from minio import Minio
from minio.error import S3Error
import io
import logging
import os
import tempfile

from billing.core.config import settings

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


class LocalInvoiceStorage:
    """Guarda facturas en el sistema de archivos local"""

    def __init__(self, directory: str, url_prefix: str = "/invoices"):
        self.directory = directory
        self.url_prefix = url_prefix.rstrip("/")

    def path(self, name: str) -> str:
        return os.path.join(self.directory, name)

    def save(self, name: str, data: bytes) -> str:
        """Escritura atómica: nunca se lee un PDF a medio escribir"""
        os.makedirs(self.directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as tmp_file:
                tmp_file.write(data)
            os.replace(tmp_path, self.path(name))
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        logger.debug(f"Invoice stored at {self.path(name)} ({len(data)} bytes)")
        return self.url(name)

    def exists(self, name: str) -> bool:
        return os.path.isfile(self.path(name))

    def url(self, name: str) -> str:
        return f"{self.url_prefix}/{name}"


class MinIOInvoiceStorage:
    """Guarda facturas en un bucket de MinIO"""

    def __init__(self, client: Minio = None, bucket_name: str = None, url_expires: timedelta = None):
        self.client = client or Minio(
            settings.minio_endpoint,
            access_key=settings.MINIO_ACCESS_KEY,
            secret_key=settings.MINIO_SECRET_KEY,
            secure=settings.MINIO_USE_SSL
        )
        self.bucket_name = bucket_name or settings.MINIO_BUCKET_NAME
        self.url_expires = url_expires or timedelta(hours=settings.MINIO_URL_EXPIRE_HOURS)
        self._bucket_ready = False

    def _ensure_bucket_exists(self):
        if self._bucket_ready:
            return
        if not self.client.bucket_exists(bucket_name=self.bucket_name):
            self.client.make_bucket(bucket_name=self.bucket_name)
            logger.info(f"Created MinIO bucket: {self.bucket_name}")
        self._bucket_ready = True

    def save(self, name: str, data: bytes) -> str:
        self._ensure_bucket_exists()
        self.client.put_object(
            bucket_name=self.bucket_name,
            object_name=name,
            data=io.BytesIO(data),
            length=len(data),
            content_type=PDF_CONTENT_TYPE
        )
        logger.debug(f"Invoice uploaded to {self.bucket_name}/{name} ({len(data)} bytes)")
        return self.url(name)

    def exists(self, name: str) -> bool:
        try:
            self.client.stat_object(bucket_name=self.bucket_name, object_name=name)
            return True
        except S3Error:
            return False

    def url(self, name: str) -> str:
        return self.client.presigned_get_object(
            bucket_name=self.bucket_name,
            object_name=name,
            expires=self.url_expires
        )


@lru_cache(maxsize=1)
def build_invoice_storage():
    """Backend configurado por INVOICE_STORAGE"""
    if settings.INVOICE_STORAGE == "minio":
        return MinIOInvoiceStorage()
    return LocalInvoiceStorage(settings.INVOICES_DIR, settings.INVOICES_URL_PREFIX)
