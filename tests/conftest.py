"""Shared pytest fixtures for all tests."""

import io
import zipfile
from datetime import datetime, timezone
from pathlib import Path

import pytest
from eth_utils import keccak

from common.types import (
    ContentReference,
    PointerEntry,
    PointerManifest,
    StorageAllocation,
    UploadTag,
)
from publisher.artifacts import select_latest
from publisher.exceptions import PreconditionFailedError, StorageGatewayError
from publisher.identity import SigningIdentity
from publisher.orchestrator import PublishContext
from publisher.schemas import ArtifactResponse

TEST_PRIVATE_KEY = "0x4f3edf983ac636a65a842ce7c78d9aa706d3b113bce9c46f30d7d21715b23b1d"
CONTENT_REFERENCE = ContentReference("ab" * 32)


class FakeClock:
    """Monotonic clock advanced only by sleep()."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeGateway:
    """In-memory storage gateway recording every call."""

    def __init__(self, allocations=None, progress=None, split=100):
        self.allocations = list(allocations) if allocations is not None else [
            StorageAllocation("batch-1", 3600, True)
        ]
        self.split = split
        self.progress = list(progress) if progress is not None else [split]
        self.calls = []
        self.feeds = {}
        self.fail_on = set()

    def _record(self, name, *args):
        self.calls.append((name, args))
        if name in self.fail_on:
            raise StorageGatewayError(f"{name} exploded", status_code=500)

    def called(self, name):
        return [args for call, args in self.calls if call == name]

    def list_allocations(self):
        self._record("list_allocations")
        return list(self.allocations)

    def create_upload_tag(self):
        self._record("create_upload_tag")
        return UploadTag(uid=7, split=self.split, seen=0, synced=0)

    def upload_directory(self, allocation_id, path, tag_uid, options):
        self._record("upload_directory", allocation_id, Path(path), tag_uid, options)
        return CONTENT_REFERENCE

    def retrieve_tag(self, tag_uid):
        self._record("retrieve_tag", tag_uid)
        value = self.progress.pop(0) if len(self.progress) > 1 else self.progress[0]
        return UploadTag(uid=tag_uid, split=self.split, seen=value, synced=0)

    def bzz_url(self, reference):
        return f"http://bee.test/bzz/{reference}/"

    def create_pointer_manifest(self, allocation_id, topic, owner_address):
        self._record("create_pointer_manifest", allocation_id, topic, owner_address)
        owner = owner_address.lower().removeprefix("0x")
        reference = keccak(bytes.fromhex(owner) + topic).hex()
        return PointerManifest(reference=reference, owner=owner, topic=topic.hex())

    def write_pointer_entry(self, allocation_id, identity, topic, content_reference):
        self._record("write_pointer_entry", allocation_id, identity, topic, content_reference)
        entries = self.feeds.setdefault((identity.owner_hex, topic), [])
        entry = PointerEntry(
            reference=f"{len(entries):064x}",
            index=len(entries),
            content_reference=content_reference,
            timestamp=1700000000 + len(entries),
        )
        entries.append(entry)
        return entry


class FakeArtifactSource:
    """Artifact source that writes a fixed set of files into the workspace."""

    def __init__(self, files=None, artifacts=None):
        self.files = files if files is not None else {
            "index.html": "<html>hello</html>",
            "404.html": "<html>missing</html>",
            "assets/app.js": "console.log('hi')",
        }
        self.artifacts = artifacts if artifacts is not None else [
            ArtifactResponse(id=42, name="web3-build", created_at=datetime(2024, 5, 1, tzinfo=timezone.utc)),
        ]
        self.downloads = []

    def latest_artifact(self, name=None):
        try:
            return select_latest(self.artifacts)
        except PreconditionFailedError:
            raise PreconditionFailedError(f'No artifacts found with name "{name}"')

    def download_and_extract(self, artifact_id, destination):
        self.downloads.append((artifact_id, destination))
        for relative, content in self.files.items():
            target = Path(destination) / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)


def make_zip(files) -> bytes:
    """Build an in-memory zip archive from a {name: text} mapping."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return buffer.getvalue()


@pytest.fixture
def identity():
    return SigningIdentity.from_private_key(TEST_PRIVATE_KEY)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def fake_artifacts():
    return FakeArtifactSource()


@pytest.fixture
def site_dir(tmp_path):
    """
    Create a small static site directory.

    Returns:
        Path to directory containing index.html and a nested asset
    """
    site = tmp_path / "site"
    (site / "assets").mkdir(parents=True)
    (site / "index.html").write_text("<html>hello</html>")
    (site / "assets" / "app.js").write_text("console.log('hi')")
    return site


@pytest.fixture
def publish_context(tmp_path, identity):
    return PublishContext(
        workspace=tmp_path / "artifact",
        topic="website",
        identity=identity,
        build_name="web3-build",
    )
