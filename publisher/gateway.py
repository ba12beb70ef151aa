"""Storage gateway contract consumed by the publish pipeline.

Keep this small so tests can supply in-memory fakes.
"""

from pathlib import Path
from typing import List, Protocol

from common.types import (
    ContentReference,
    ManifestOptions,
    PointerEntry,
    PointerManifest,
    StorageAllocation,
    UploadTag,
)
from publisher.identity import SigningIdentity


class StorageGateway(Protocol):
    """Operations the pipeline needs from a storage node.

    Implementations raise StorageGatewayError for any transport or node-side
    failure; they never retry on their own.
    """

    def list_allocations(self) -> List[StorageAllocation]: ...

    def create_upload_tag(self) -> UploadTag: ...

    def upload_directory(
        self,
        allocation_id: str,
        path: Path,
        tag_uid: int,
        options: ManifestOptions,
    ) -> ContentReference: ...

    def retrieve_tag(self, tag_uid: int) -> UploadTag: ...

    def bzz_url(self, reference: str) -> str: ...

    def create_pointer_manifest(self, allocation_id: str, topic: bytes, owner_address: str) -> PointerManifest: ...

    def write_pointer_entry(
        self,
        allocation_id: str,
        identity: SigningIdentity,
        topic: bytes,
        content_reference: ContentReference,
    ) -> PointerEntry: ...


__all__ = ["StorageGateway"]
