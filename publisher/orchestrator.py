"""Publish pipeline: fetch, validate, select, upload, confirm, publish."""

from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Type

from common.logging_config import get_logger
from common.types import ContentReference, ManifestOptions, PointerEntry, PointerManifest
from publisher.artifacts import prepare_workspace, verify_workspace
from publisher.config import Config
from publisher.exceptions import (
    PublisherException,
    StorageGatewayError,
    UploadFailureError,
)
from publisher.gateway import StorageGateway
from publisher.identity import SigningIdentity
from publisher.monitor import ProgressReporter, ReplicationMonitor
from publisher.pointer import PointerPublisher
from publisher.schemas import ArtifactResponse
from publisher.selector import select_allocation

logger = get_logger(__name__)


class ArtifactSource(Protocol):
    def latest_artifact(self, name: Optional[str] = None) -> ArtifactResponse: ...

    def download_and_extract(self, artifact_id: int, destination: Path) -> None: ...


@dataclass(frozen=True)
class PublishContext:
    """
    Everything a run needs besides its clients.
    """
    workspace: Path
    topic: str
    identity: SigningIdentity
    options: ManifestOptions = ManifestOptions()
    build_name: Optional[str] = None
    sync_max_duration: Optional[float] = None

    @classmethod
    def from_config(cls, config: Config, identity: SigningIdentity) -> "PublishContext":
        return cls(
            workspace=config.out_dir,
            topic=config.topic,
            identity=identity,
            options=config.get_manifest_options(),
            build_name=config.build_name,
            sync_max_duration=config.get_sync_max_duration(),
        )


@dataclass(frozen=True)
class PublishOutcome:
    """
    Result of one run. error_code is None on success.
    """
    error_code: Optional[str] = None
    message: str = ""
    content_reference: Optional[ContentReference] = None
    manifest: Optional[PointerManifest] = None
    entry: Optional[PointerEntry] = None

    @property
    def success(self) -> bool:
        return self.error_code is None

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1


@contextmanager
def _stage(error_cls: Type[PublisherException], action: str):
    """Translate gateway and local I/O failures into the error kind of the current stage."""
    try:
        yield
    except (StorageGatewayError, OSError) as e:
        raise error_cls(f"{action} failed: {e}") from e


class Orchestrator:
    """
    Runs the publish pipeline once. Each step is a precondition for the next.
    """

    def __init__(
        self,
        context: PublishContext,
        artifacts: ArtifactSource,
        gateway: StorageGateway,
        reporter: Optional[ProgressReporter] = None,
        monitor: Optional[ReplicationMonitor] = None,
        pointer_publisher: Optional[PointerPublisher] = None,
    ):
        self.context = context
        self.artifacts = artifacts
        self.gateway = gateway
        self.monitor = monitor or ReplicationMonitor(
            gateway,
            reporter=reporter,
            max_duration=context.sync_max_duration,
        )
        self.pointer_publisher = pointer_publisher or PointerPublisher(gateway)
        self._content_reference: Optional[ContentReference] = None

    def run(self) -> PublishOutcome:
        """
        Execute the pipeline, converting any pipeline failure into an outcome.

        Returns:
            PublishOutcome describing success or the failing error kind
        """
        self._content_reference = None
        try:
            return self._execute()
        except PublisherException as e:
            logger.error(f"Publish failed [{e.code}]: {e}")
            if self._content_reference is not None:
                logger.error(f"Content remains stored at {self._content_reference}")
            return PublishOutcome(
                error_code=e.code,
                message=str(e),
                content_reference=self._content_reference,
            )

    def _execute(self) -> PublishOutcome:
        ctx = self.context

        prepare_workspace(ctx.workspace)
        artifact = self.artifacts.latest_artifact(ctx.build_name)
        self.artifacts.download_and_extract(artifact.id, ctx.workspace)
        verify_workspace(ctx.workspace, ctx.options.index_document)

        with _stage(UploadFailureError, "Listing postage batches"):
            allocations = self.gateway.list_allocations()
        allocation = select_allocation(allocations)

        with _stage(UploadFailureError, "Upload"):
            tag = self.gateway.create_upload_tag()
            logger.info("Uploading data")
            content_reference = self.gateway.upload_directory(
                allocation.allocation_id, ctx.workspace, tag.uid, ctx.options
            )
        self._content_reference = content_reference
        logger.info(f"Uploading done: {self.gateway.bzz_url(content_reference.value)}")
        logger.info(f"Ref: {content_reference}")

        logger.info("Waiting for file chunks to be synced on Swarm network...")
        with _stage(UploadFailureError, "Reading upload tag"):
            self.monitor.wait_until_synced(tag.uid)
        logger.info("Uploading was successful!")

        logger.info("Uploading to Feed...")
        published = self.pointer_publisher.publish(
            allocation.allocation_id, ctx.identity, ctx.topic, content_reference
        )
        logger.info(f"Feed Manifest URL: {self.gateway.bzz_url(published.manifest.reference)}")
        logger.info("Successfully uploaded to feed")

        return PublishOutcome(
            message="done",
            content_reference=content_reference,
            manifest=published.manifest,
            entry=published.entry,
        )
