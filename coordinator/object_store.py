"""
Object store client abstraction and its boto3 implementation.

Every backend call is exposed as a coroutine. The boto3 client is blocking,
so calls are pushed onto a worker thread with asyncio.to_thread and remain
cancelable from the caller's point of view.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import boto3
from boto3.exceptions import Boto3Error
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from common.constants import CID_METADATA_KEY
from common.types import ChunkReceipt, ObjectHead, ObjectPage, ObjectSummary
from coordinator import config
from coordinator.exceptions import BackendUnavailableError

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}
_NO_SUCH_UPLOAD_CODES = {"NoSuchUpload"}

_ASSEMBLY_METADATA_PARAM = "Metadata"
_ASSEMBLY_METADATA_CONTEXT = "vaultline_assembly_metadata"


class ObjectStore(ABC):
    """
    Operations the coordinator needs from an S3-compatible backend.
    """

    @abstractmethod
    async def reserve_multipart_upload(self, key: str, content_type: str) -> str:
        """Start a multipart upload and return the backend session id."""

    @abstractmethod
    async def authorize_chunk_upload(
        self, session_id: str, key: str, chunk_number: int, expires_in: int
    ) -> str:
        """Return a time-limited URL the client can PUT one chunk to."""

    @abstractmethod
    async def assemble_upload(
        self,
        session_id: str,
        key: str,
        receipts: List[ChunkReceipt],
        metadata: Dict[str, str],
    ) -> Optional[str]:
        """
        Assemble the uploaded chunks into the final object.

        Returns:
            The content identifier if the backend reported one, else None
        """

    @abstractmethod
    async def abort_multipart_upload(self, session_id: str, key: str) -> bool:
        """
        Release storage reserved for a multipart upload.

        Returns:
            False when the backend had nothing to abort, True otherwise
        """

    @abstractmethod
    async def head_object(self, key: str) -> Optional[ObjectHead]:
        """Return object metadata, or None if the key does not exist."""

    @abstractmethod
    async def list_objects(
        self, prefix: str, page_token: Optional[str], max_items: int
    ) -> ObjectPage:
        """List one page of objects under a prefix."""

    @abstractmethod
    async def copy_object(self, from_key: str, to_key: str) -> None:
        """Copy an object to a new key, keeping its metadata."""

    @abstractmethod
    async def delete_object(self, key: str) -> None:
        """Delete an object."""

    async def ping(self) -> None:
        """Raise if the backend is unreachable."""
        await self.list_objects("", None, 1)

    async def close(self) -> None:
        return None


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


def _stash_assembly_metadata(params, context, **kwargs):
    """
    CompleteMultipartUpload has no Metadata parameter in the S3 model.
    Pull it out of the call params before validation so it can be sent as
    x-amz-meta-* headers, which S3-compatible gateways keep on the object.
    """
    metadata = params.pop(_ASSEMBLY_METADATA_PARAM, None)
    if metadata:
        context[_ASSEMBLY_METADATA_CONTEXT] = metadata


def _apply_assembly_metadata(request, **kwargs):
    metadata = request.context.get(_ASSEMBLY_METADATA_CONTEXT) or {}
    for name, value in metadata.items():
        request.headers[f"x-amz-meta-{name}"] = value


def build_s3_client():
    """
    Create a boto3 S3 client for the configured S3-compatible endpoint.
    """
    boto_config = Config(
        region_name=config.S3_REGION,
        retries={"max_attempts": 5, "mode": "standard"},
        connect_timeout=5,
        read_timeout=60,
        s3={"addressing_style": "path"},
        signature_version="s3v4",
    )
    client = boto3.client(
        "s3",
        endpoint_url=config.S3_ENDPOINT,
        aws_access_key_id=config.S3_ACCESS_KEY,
        aws_secret_access_key=config.S3_SECRET_KEY,
        config=boto_config,
    )
    client.meta.events.register(
        "before-parameter-build.s3.CompleteMultipartUpload", _stash_assembly_metadata
    )
    client.meta.events.register(
        "before-sign.s3.CompleteMultipartUpload", _apply_assembly_metadata
    )
    logger.info(f"S3 client initialized endpoint={config.S3_ENDPOINT or 'aws'} bucket={config.S3_BUCKET}")
    return client


class S3ObjectStore(ObjectStore):
    """
    ObjectStore backed by boto3. Translates botocore failures into
    BackendUnavailableError with the failing operation and key.
    """

    def __init__(self, client=None, bucket: Optional[str] = None):
        self._client = client
        self.bucket = bucket or config.S3_BUCKET

    @property
    def client(self):
        if self._client is None:
            self._client = build_s3_client()
        return self._client

    async def _call(self, operation: str, key: Optional[str] = None, session_id: Optional[str] = None, **params):
        method = getattr(self.client, operation)
        try:
            return await asyncio.to_thread(method, **params)
        except (ClientError, BotoCoreError, Boto3Error) as e:
            logger.error(f"S3 {operation} failed [key={key}] [session_id={session_id}]: {e}")
            raise BackendUnavailableError(operation, key=key, session_id=session_id, reason=str(e)) from e

    async def reserve_multipart_upload(self, key: str, content_type: str) -> str:
        response = await self._call(
            "create_multipart_upload",
            key=key,
            Bucket=self.bucket,
            Key=key,
            ContentType=content_type,
        )
        return response["UploadId"]

    async def authorize_chunk_upload(
        self, session_id: str, key: str, chunk_number: int, expires_in: int
    ) -> str:
        return await self._call(
            "generate_presigned_url",
            key=key,
            session_id=session_id,
            ClientMethod="upload_part",
            Params={
                "Bucket": self.bucket,
                "Key": key,
                "UploadId": session_id,
                "PartNumber": chunk_number,
            },
            ExpiresIn=expires_in,
        )

    async def assemble_upload(
        self,
        session_id: str,
        key: str,
        receipts: List[ChunkReceipt],
        metadata: Dict[str, str],
    ) -> Optional[str]:
        parts = [
            {"ETag": receipt.integrity_tag, "PartNumber": receipt.chunk_number}
            for receipt in sorted(receipts, key=lambda r: r.chunk_number)
        ]
        params = {
            "Bucket": self.bucket,
            "Key": key,
            "UploadId": session_id,
            "MultipartUpload": {"Parts": parts},
        }
        if metadata:
            params[_ASSEMBLY_METADATA_PARAM] = dict(metadata)

        response = await self._call(
            "complete_multipart_upload",
            key=key,
            session_id=session_id,
            **params,
        )
        headers = response.get("ResponseMetadata", {}).get("HTTPHeaders", {}) or {}
        return headers.get(f"x-amz-meta-{CID_METADATA_KEY}") or None

    async def abort_multipart_upload(self, session_id: str, key: str) -> bool:
        try:
            await asyncio.to_thread(
                self.client.abort_multipart_upload,
                Bucket=self.bucket,
                Key=key,
                UploadId=session_id,
            )
        except ClientError as e:
            if _error_code(e) in _NO_SUCH_UPLOAD_CODES:
                logger.info(f"Nothing to abort for session {session_id} [key={key}]")
                return False
            logger.error(f"S3 abort_multipart_upload failed [key={key}] [session_id={session_id}]: {e}")
            raise BackendUnavailableError("abort_multipart_upload", key=key, session_id=session_id, reason=str(e)) from e
        except BotoCoreError as e:
            raise BackendUnavailableError("abort_multipart_upload", key=key, session_id=session_id, reason=str(e)) from e
        return True

    async def head_object(self, key: str) -> Optional[ObjectHead]:
        try:
            response = await asyncio.to_thread(
                self.client.head_object, Bucket=self.bucket, Key=key
            )
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                return None
            logger.error(f"S3 head_object failed [key={key}]: {e}")
            raise BackendUnavailableError("head_object", key=key, reason=str(e)) from e
        except BotoCoreError as e:
            raise BackendUnavailableError("head_object", key=key, reason=str(e)) from e

        metadata = {k.lower(): v for k, v in (response.get("Metadata") or {}).items()}
        headers = response.get("ResponseMetadata", {}).get("HTTPHeaders", {}) or {}
        content_identifier = (
            metadata.get(CID_METADATA_KEY)
            or headers.get(f"x-amz-meta-{CID_METADATA_KEY}")
            or None
        )
        return ObjectHead(
            key=key,
            size=int(response.get("ContentLength") or 0),
            last_modified=response.get("LastModified"),
            content_type=response.get("ContentType"),
            content_identifier=content_identifier,
            metadata=metadata,
        )

    async def list_objects(
        self, prefix: str, page_token: Optional[str], max_items: int
    ) -> ObjectPage:
        params = {"Bucket": self.bucket, "MaxKeys": max_items}
        if prefix:
            params["Prefix"] = prefix
        if page_token:
            params["ContinuationToken"] = page_token

        response = await self._call("list_objects_v2", key=prefix or None, **params)
        items = [
            ObjectSummary(
                key=entry["Key"],
                size=int(entry.get("Size") or 0),
                last_modified=entry.get("LastModified"),
            )
            for entry in response.get("Contents", [])
        ]
        next_token = response.get("NextContinuationToken") if response.get("IsTruncated") else None
        return ObjectPage(items=items, next_page_token=next_token)

    async def copy_object(self, from_key: str, to_key: str) -> None:
        source = await self.head_object(from_key)
        if source is None:
            raise BackendUnavailableError("copy", key=from_key, reason="source object disappeared")

        # Managed copy switches to multipart copy above its threshold, and
        # multipart copies only carry the metadata passed here.
        extra_args = {"MetadataDirective": "REPLACE", "Metadata": dict(source.metadata)}
        if source.content_type:
            extra_args["ContentType"] = source.content_type

        await self._call(
            "copy",
            key=to_key,
            CopySource={"Bucket": self.bucket, "Key": from_key},
            Bucket=self.bucket,
            Key=to_key,
            ExtraArgs=extra_args,
        )

    async def delete_object(self, key: str) -> None:
        await self._call("delete_object", key=key, Bucket=self.bucket, Key=key)
