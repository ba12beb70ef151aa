"""Feed pointer publishing."""

from dataclasses import dataclass

from common.logging_config import get_logger
from common.types import ContentReference, PointerEntry, PointerManifest
from publisher.exceptions import PointerPublishFailureError, StorageGatewayError
from publisher.feeds import make_topic
from publisher.gateway import StorageGateway
from publisher.identity import SigningIdentity

logger = get_logger(__name__)


@dataclass(frozen=True)
class PublishedPointer:
    manifest: PointerManifest
    entry: PointerEntry


class PointerPublisher:
    """
    Advances a sequence feed to a new content reference.

    Exactly one feed update is written per publish() call. Nothing is retried:
    if the update fails the content stays stored and the error says so.
    """

    def __init__(self, gateway: StorageGateway):
        self.gateway = gateway

    def publish(
        self,
        allocation_id: str,
        identity: SigningIdentity,
        topic_name: str,
        content_reference: ContentReference,
    ) -> PublishedPointer:
        """
        Create (or re-derive) the feed manifest and write one update.

        Args:
            allocation_id: Postage batch paying for the manifest and update
            identity: Feed owner
            topic_name: Human readable topic
            content_reference: Reference the feed should now resolve to

        Returns:
            PublishedPointer with the manifest and the written entry

        Raises:
            PointerPublishFailureError: If the manifest or update cannot be written
        """
        topic = make_topic(topic_name)
        logger.info(f"Updating feed '{topic_name}' [owner={identity.address}, topic={topic.hex()}]")

        try:
            manifest = self.gateway.create_pointer_manifest(allocation_id, topic, identity.address)
            entry = self.gateway.write_pointer_entry(allocation_id, identity, topic, content_reference)
        except (StorageGatewayError, ValueError) as e:
            raise PointerPublishFailureError(
                f"Feed update failed; content {content_reference} is stored but the feed was not advanced: {e}",
                content_reference=str(content_reference),
            ) from e

        logger.info(f"Feed entry {entry.index} written [reference={entry.reference}]")
        return PublishedPointer(manifest=manifest, entry=entry)
