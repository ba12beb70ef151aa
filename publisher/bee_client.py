"""HTTP client for a Bee node, implementing the StorageGateway contract."""

import io
import tarfile
import time
from pathlib import Path
from typing import Callable, Dict, List, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from common.constants import (
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    FEED_TYPE_SEQUENCE,
    HEADER_COLLECTION,
    HEADER_DEFERRED,
    HEADER_ENCRYPT,
    HEADER_ERROR_DOCUMENT,
    HEADER_FEED_INDEX_NEXT,
    HEADER_INDEX_DOCUMENT,
    HEADER_PIN,
    HEADER_POSTAGE_BATCH_ID,
    HEADER_REDUNDANCY_LEVEL,
    HEADER_TAG,
)
from common.logging_config import get_logger
from common.types import (
    ContentReference,
    ManifestOptions,
    PointerEntry,
    PointerManifest,
    StorageAllocation,
    UploadTag,
)
from publisher.exceptions import StorageGatewayError
from publisher.feeds import make_feed_identifier, make_feed_payload, make_single_owner_chunk
from publisher.identity import SigningIdentity
from publisher.schemas import ReferenceResponse, StampsResponse, TagResponse

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _flag(value: bool) -> str:
    return "true" if value else "false"


def make_tar(path: Path) -> bytes:
    """
    Pack a directory into an in-memory tar archive with relative POSIX paths.

    Args:
        path: Directory to pack

    Returns:
        Tar archive bytes
    """
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as tar:
        for file_path in sorted(p for p in path.rglob("*") if p.is_file()):
            tar.add(str(file_path), arcname=file_path.relative_to(path).as_posix())
    return buffer.getvalue()


class BeeGateway:
    """HTTP client for the Bee API. Requests are never retried."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize Bee client.

        Args:
            base_url: Bee API URL (e.g., "http://localhost:1633")
            timeout: Request timeout in seconds
            clock: Source of unix time for feed update timestamps
        """
        self.base_url = base_url.rstrip("/")
        self.session = httpx.Client(base_url=self.base_url, timeout=timeout)
        self.clock = clock
        logger.info(f"Initialized BeeGateway [base_url={self.base_url}]")

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "BeeGateway":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def bzz_url(self, reference: str) -> str:
        """Gateway URL at which a manifest reference can be browsed."""
        return f"{self.base_url}/bzz/{reference}/"

    def _request(self, method: str, endpoint: str, expected=(200, 201), **kwargs) -> httpx.Response:
        """
        Make a single HTTP request.

        Raises:
            StorageGatewayError: On network failure or an unexpected status code
        """
        logger.debug(f"Making request: {method} {endpoint}")
        try:
            response = self.session.request(method, endpoint, **kwargs)
        except httpx.TimeoutException as e:
            raise StorageGatewayError(f"{method} {endpoint} timed out") from e
        except httpx.HTTPError as e:
            raise StorageGatewayError(f"{method} {endpoint} failed: {type(e).__name__}: {e}") from e

        logger.debug(f"Response received: {method} {endpoint} status={response.status_code}")

        if response.status_code not in expected:
            raise StorageGatewayError(
                f"{method} {endpoint} returned {response.status_code}: {self._format_error(response)}",
                status_code=response.status_code,
            )
        return response

    def _format_error(self, response: httpx.Response) -> str:
        """
        Extract a readable message from a Bee error response.

        Args:
            response: HTTP response object

        Returns:
            Message reported by the node, or a description of the status
        """
        try:
            message = response.json().get("message")
        except (ValueError, AttributeError):
            message = None
        if message:
            return message

        status_messages = {
            400: 'Bad request',
            401: 'Unauthorized',
            402: 'Payment required (postage batch exhausted or missing)',
            403: 'Forbidden',
            404: 'Not found',
            413: 'Payload too large',
            422: 'Unprocessable entity',
            500: 'Node error',
            503: 'Node unavailable',
        }
        return status_messages.get(response.status_code, response.text or 'Unknown error')

    def _parse(self, model: Type[ModelT], response: httpx.Response) -> ModelT:
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise StorageGatewayError(f"Unexpected response from {response.request.url.path}: {e}") from e

    @staticmethod
    def _to_tag(data: TagResponse) -> UploadTag:
        return UploadTag(uid=data.uid, split=data.split, seen=data.seen, synced=data.synced)

    def list_allocations(self) -> List[StorageAllocation]:
        response = self._request("GET", "/stamps")
        stamps = self._parse(StampsResponse, response).stamps
        logger.debug(f"Node reports {len(stamps)} postage batch(es)")
        return [
            StorageAllocation(allocation_id=s.batch_id, ttl=s.batch_ttl, usable=s.usable)
            for s in stamps
        ]

    def create_upload_tag(self) -> UploadTag:
        response = self._request("POST", "/tags")
        tag = self._to_tag(self._parse(TagResponse, response))
        logger.debug(f"Created upload tag {tag.uid}")
        return tag

    def retrieve_tag(self, tag_uid: int) -> UploadTag:
        response = self._request("GET", f"/tags/{tag_uid}")
        return self._to_tag(self._parse(TagResponse, response))

    def upload_directory(
        self,
        allocation_id: str,
        path: Path,
        tag_uid: int,
        options: ManifestOptions,
    ) -> ContentReference:
        """
        Upload a directory as a website collection.

        Args:
            allocation_id: Postage batch paying for the upload
            path: Directory to upload
            tag_uid: Tag tracking chunk sync for this upload
            options: Collection manifest options

        Returns:
            Reference of the collection manifest
        """
        path = Path(path)
        if not path.is_dir():
            raise StorageGatewayError(f"Upload source is not a directory: {path}")

        try:
            body = make_tar(path)
        except OSError as e:
            raise StorageGatewayError(f"Cannot read upload source {path}: {e}") from e
        headers: Dict[str, str] = {
            "Content-Type": "application/x-tar",
            HEADER_COLLECTION: "true",
            HEADER_POSTAGE_BATCH_ID: allocation_id,
            HEADER_INDEX_DOCUMENT: options.index_document,
            HEADER_ERROR_DOCUMENT: options.error_document,
            HEADER_TAG: str(tag_uid),
            HEADER_PIN: _flag(options.pin),
            HEADER_ENCRYPT: _flag(options.encrypt),
            HEADER_DEFERRED: _flag(options.deferred),
        }
        if options.redundancy_level is not None:
            headers[HEADER_REDUNDANCY_LEVEL] = str(options.redundancy_level)

        logger.info(f"Uploading {path} ({len(body)} bytes as tar) [tag={tag_uid}]")
        response = self._request("POST", "/bzz", content=body, headers=headers)
        return ContentReference(self._parse(ReferenceResponse, response).reference)

    def create_pointer_manifest(self, allocation_id: str, topic: bytes, owner_address: str) -> PointerManifest:
        owner = owner_address.lower().removeprefix("0x")
        response = self._request(
            "POST",
            f"/feeds/{owner}/{topic.hex()}",
            params={"type": FEED_TYPE_SEQUENCE},
            headers={HEADER_POSTAGE_BATCH_ID: allocation_id},
        )
        reference = self._parse(ReferenceResponse, response).reference
        return PointerManifest(reference=reference, owner=owner, topic=topic.hex())

    def _next_feed_index(self, owner: str, topic: bytes) -> int:
        """
        Look up the index the next feed update must be written at.

        An unknown feed starts at index 0.
        """
        response = self._request(
            "GET",
            f"/feeds/{owner}/{topic.hex()}",
            expected=(200, 404),
            params={"type": FEED_TYPE_SEQUENCE},
        )
        if response.status_code == 404:
            return 0

        raw = response.headers.get(HEADER_FEED_INDEX_NEXT)
        if not raw:
            raise StorageGatewayError(f"Feed lookup did not return {HEADER_FEED_INDEX_NEXT}")
        try:
            return int(raw, 16)
        except ValueError as e:
            raise StorageGatewayError(f"Malformed feed index '{raw}'") from e

    def write_pointer_entry(
        self,
        allocation_id: str,
        identity: SigningIdentity,
        topic: bytes,
        content_reference: ContentReference,
    ) -> PointerEntry:
        """
        Append a feed update pointing at `content_reference`.

        Args:
            allocation_id: Postage batch paying for the update chunk
            identity: Feed owner
            topic: 32-byte feed topic
            content_reference: Reference the feed should resolve to

        Returns:
            The written PointerEntry
        """
        index = self._next_feed_index(identity.owner_hex, topic)
        timestamp = int(self.clock())
        identifier = make_feed_identifier(topic, index)
        payload = make_feed_payload(content_reference.to_bytes(), timestamp)
        chunk = make_single_owner_chunk(identity, identifier, payload)

        logger.debug(f"Writing feed update [owner={chunk.owner}, index={index}]")
        response = self._request(
            "POST",
            f"/soc/{chunk.owner}/{identifier.hex()}",
            params={"sig": chunk.signature.hex()},
            content=chunk.data,
            headers={
                "Content-Type": "application/octet-stream",
                HEADER_POSTAGE_BATCH_ID: allocation_id,
            },
        )
        reference = self._parse(ReferenceResponse, response).reference
        return PointerEntry(
            reference=reference,
            index=index,
            content_reference=content_reference,
            timestamp=timestamp,
        )
