"""Shared data type definitions (StorageAllocation, UploadTag, pointer records, etc.)."""

from dataclasses import dataclass
from typing import Optional

from common.constants import DEFAULT_ERROR_DOCUMENT, DEFAULT_INDEX_DOCUMENT


@dataclass(frozen=True)
class StorageAllocation:
    """
    A prepaid postage batch as reported by the node.
    """
    allocation_id: str
    ttl: int
    usable: bool

    @property
    def eligible(self) -> bool:
        return self.ttl > 0 and self.usable


@dataclass(frozen=True)
class UploadTag:
    """
    Snapshot of an upload's chunk counters.
    """
    uid: int
    split: int
    seen: int
    synced: int

    @property
    def progress(self) -> int:
        return self.seen + self.synced

    @property
    def complete(self) -> bool:
        return self.progress >= self.split


@dataclass(frozen=True)
class ContentReference:
    """
    Hex address of uploaded content.
    """
    value: str

    def __str__(self) -> str:
        return self.value

    def to_bytes(self) -> bytes:
        return bytes.fromhex(self.value)


@dataclass(frozen=True)
class ManifestOptions:
    """
    Options applied to a website collection upload.
    """
    index_document: str = DEFAULT_INDEX_DOCUMENT
    error_document: str = DEFAULT_ERROR_DOCUMENT
    pin: bool = True
    encrypt: bool = False
    deferred: bool = True
    redundancy_level: Optional[int] = None


@dataclass(frozen=True)
class PointerManifest:
    """
    Address under which the latest feed entry resolves.
    """
    reference: str
    owner: str
    topic: str


@dataclass(frozen=True)
class PointerEntry:
    """
    A signed feed update written at a sequence index.
    """
    reference: str
    index: int
    content_reference: ContentReference
    timestamp: int
