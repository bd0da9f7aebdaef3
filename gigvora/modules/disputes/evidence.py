"""Dispute evidence storage (S3 / MinIO)."""

from __future__ import annotations

import base64
import binascii
import uuid
from dataclasses import dataclass

import boto3
import structlog
from botocore.config import Config as BotoConfig

from gigvora.core.config import settings
from gigvora.core.errors import ValidationError

logger = structlog.get_logger()

MAX_EVIDENCE_BYTES = 10 * 1024 * 1024


@dataclass
class StoredEvidence:
    key: str
    url: str
    file_name: str
    content_type: str
    size: int


def _get_s3_client():
    """Create a boto3 S3 client configured for MinIO / AWS."""
    return boto3.client(
        "s3",
        endpoint_url=settings.AWS_S3_ENDPOINT_URL or None,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        region_name=settings.AWS_S3_REGION,
        config=BotoConfig(signature_version="s3v4"),
    )


def decode_evidence(content: str) -> bytes:
    """Decode base64 evidence, accepting ``data:<mime>;base64,`` prefixes."""
    if "," in content and content.startswith("data:"):
        content = content.split(",", 1)[1]
    try:
        raw = base64.b64decode(content, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("Evidence content must be base64 encoded.") from exc
    if not raw:
        raise ValidationError("Evidence content is empty.")
    if len(raw) > MAX_EVIDENCE_BYTES:
        raise ValidationError("Evidence files must be 10 MB or smaller.")
    return raw


def store_evidence(
    dispute_id: uuid.UUID,
    file_name: str | None,
    content_type: str | None,
    content: str,
) -> StoredEvidence:
    raw = decode_evidence(content)
    safe_name = (file_name or "evidence").replace("/", "_").replace("\\", "_")[:200]
    mime_type = content_type or "application/octet-stream"
    key = f"disputes/{dispute_id}/{uuid.uuid4()}/{safe_name}"

    s3 = _get_s3_client()
    s3.put_object(
        Bucket=settings.DISPUTE_EVIDENCE_BUCKET,
        Key=key,
        Body=raw,
        ContentType=mime_type,
    )
    base = (settings.AWS_S3_ENDPOINT_URL or f"https://s3.{settings.AWS_S3_REGION}.amazonaws.com").rstrip("/")
    logger.info("disputes.evidence_stored", dispute_id=str(dispute_id), key=key, size=len(raw))
    return StoredEvidence(
        key=key,
        url=f"{base}/{settings.DISPUTE_EVIDENCE_BUCKET}/{key}",
        file_name=safe_name,
        content_type=mime_type,
        size=len(raw),
    )
