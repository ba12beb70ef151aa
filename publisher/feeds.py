"""Sequence feed primitives: topics, identifiers and single-owner chunks."""

from dataclasses import dataclass

from eth_utils import keccak

from common.constants import (
    CHUNK_PAYLOAD_SIZE,
    FEED_INDEX_SIZE,
    SEGMENT_SIZE,
    SPAN_SIZE,
    TIMESTAMP_SIZE,
    TOPIC_SIZE,
)
from publisher.identity import SigningIdentity


def make_topic(name: str) -> bytes:
    """Derive the 32-byte feed topic from a human readable name."""
    return keccak(name.encode("utf-8"))


def make_feed_identifier(topic: bytes, index: int) -> bytes:
    """Identifier of the chunk holding feed update number `index`."""
    if len(topic) != TOPIC_SIZE:
        raise ValueError(f"topic must be {TOPIC_SIZE} bytes, got {len(topic)}")
    if index < 0:
        raise ValueError("feed index must be non-negative")
    return keccak(topic + index.to_bytes(FEED_INDEX_SIZE, "big"))


def make_span(length: int) -> bytes:
    return length.to_bytes(SPAN_SIZE, "little")


def bmt_root(payload: bytes) -> bytes:
    """
    Binary Merkle tree root over the zero-padded chunk payload.

    Raises:
        ValueError: If payload exceeds one chunk
    """
    if len(payload) > CHUNK_PAYLOAD_SIZE:
        raise ValueError(f"payload exceeds {CHUNK_PAYLOAD_SIZE} bytes")

    data = payload.ljust(CHUNK_PAYLOAD_SIZE, b"\x00")
    level = [data[i:i + SEGMENT_SIZE] for i in range(0, CHUNK_PAYLOAD_SIZE, SEGMENT_SIZE)]
    while len(level) > 1:
        level = [keccak(level[i] + level[i + 1]) for i in range(0, len(level), 2)]
    return level[0]


def content_address(payload: bytes) -> bytes:
    """Address of a content-addressed chunk carrying `payload`."""
    return keccak(make_span(len(payload)) + bmt_root(payload))


def make_feed_payload(reference: bytes, timestamp: int) -> bytes:
    return timestamp.to_bytes(TIMESTAMP_SIZE, "big") + reference


@dataclass(frozen=True)
class SingleOwnerChunk:
    """
    A signed chunk ready for upload to /soc/{owner}/{identifier}.
    """
    owner: str
    identifier: bytes
    signature: bytes
    data: bytes

    @property
    def address(self) -> str:
        return keccak(self.identifier + bytes.fromhex(self.owner)).hex()


def make_single_owner_chunk(identity: SigningIdentity, identifier: bytes, payload: bytes) -> SingleOwnerChunk:
    """
    Wrap `payload` in a chunk signed by `identity` under `identifier`.

    The owner signs keccak256(identifier || content address).

    Raises:
        ValueError: If the payload is too large or signing fails
    """
    digest = keccak(identifier + content_address(payload))
    try:
        signature = identity.sign_digest(digest)
    except Exception as e:
        raise ValueError(f"Signing feed update failed: {type(e).__name__}: {e}") from e
    return SingleOwnerChunk(
        owner=identity.owner_hex,
        identifier=identifier,
        signature=signature,
        data=make_span(len(payload)) + payload,
    )
