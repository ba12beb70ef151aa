"""GitHub Actions artifact retrieval and workspace preparation."""

import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import List, Optional

import httpx
from pydantic import ValidationError

from common.constants import DEFAULT_GITHUB_API_URL, DEFAULT_HTTP_TIMEOUT_SECONDS, GITHUB_ACCEPT, GITHUB_API_VERSION
from common.logging_config import get_logger
from publisher.exceptions import PreconditionFailedError
from publisher.schemas import ArtifactListResponse, ArtifactResponse

logger = get_logger(__name__)


def prepare_workspace(path: Path) -> None:
    """
    Remove any previous workspace so extraction starts from empty.

    Raises:
        PreconditionFailedError: If the previous workspace cannot be removed
    """
    if path.exists() or path.is_symlink():
        logger.debug(f"Removing previous workspace {path}")
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise PreconditionFailedError(f"Cannot clear workspace {path}: {e}") from e


def verify_workspace(path: Path, entry_document: str) -> None:
    """
    Check that the extracted build is publishable.

    Raises:
        PreconditionFailedError: If the directory or its entry document is missing
    """
    if not path.is_dir():
        raise PreconditionFailedError(f"Directory {path} does not exist")
    if not (path / entry_document).is_file():
        raise PreconditionFailedError(f"No {entry_document} in {path}")


def select_latest(artifacts: List[ArtifactResponse]) -> ArtifactResponse:
    """
    Pick the most recently created artifact that has not expired.

    Raises:
        PreconditionFailedError: If there is no candidate
    """
    candidates = [a for a in artifacts if not a.expired]
    if not candidates:
        raise PreconditionFailedError("No artifacts found")
    return max(candidates, key=lambda a: a.created_at)


def extract_archive(archive_path: Path, destination: Path) -> None:
    """
    Extract a zip archive, refusing members that escape the destination.

    Raises:
        PreconditionFailedError: If the archive is corrupt or unsafe
    """
    try:
        destination.mkdir(parents=True, exist_ok=True)
        root = destination.resolve()
        with zipfile.ZipFile(archive_path) as archive:
            for member in archive.namelist():
                target = (root / member).resolve()
                if target != root and root not in target.parents:
                    raise PreconditionFailedError(f"Archive member escapes workspace: {member}")
            archive.extractall(root)
    except zipfile.BadZipFile as e:
        raise PreconditionFailedError(f"Artifact archive is corrupt: {e}") from e
    except OSError as e:
        raise PreconditionFailedError(f"Cannot extract artifact into {destination}: {e}") from e


class GitHubArtifactClient:
    """HTTP client for the GitHub Actions artifacts API."""

    def __init__(
        self,
        owner: str,
        repo: str,
        token: Optional[str] = None,
        base_url: str = DEFAULT_GITHUB_API_URL,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ):
        self.owner = owner
        self.repo = repo
        headers = {
            "Accept": GITHUB_ACCEPT,
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.session = httpx.Client(base_url=base_url, headers=headers, timeout=timeout, follow_redirects=True)
        logger.info(f"Initialized GitHubArtifactClient [repo={owner}/{repo}]")

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "GitHubArtifactClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _get(self, endpoint: str, **kwargs) -> httpx.Response:
        try:
            response = self.session.get(endpoint, **kwargs)
        except httpx.HTTPError as e:
            raise PreconditionFailedError(f"GitHub request failed: {type(e).__name__}: {e}") from e
        if response.status_code != 200:
            raise PreconditionFailedError(f"GitHub GET {endpoint} returned {response.status_code}")
        return response

    def list_artifacts(self, name: Optional[str] = None) -> List[ArtifactResponse]:
        params = {"per_page": 100}
        if name:
            params["name"] = name
        response = self._get(f"/repos/{self.owner}/{self.repo}/actions/artifacts", params=params)
        try:
            return ArtifactListResponse.model_validate(response.json()).artifacts
        except (ValueError, ValidationError) as e:
            raise PreconditionFailedError(f"Unexpected artifact listing: {e}") from e

    def latest_artifact(self, name: Optional[str] = None) -> ArtifactResponse:
        """
        Find the newest artifact, optionally filtered by name.

        Raises:
            PreconditionFailedError: If no artifact matches
        """
        artifacts = self.list_artifacts(name)
        try:
            artifact = select_latest(artifacts)
        except PreconditionFailedError as e:
            suffix = f' with name "{name}"' if name else ''
            raise PreconditionFailedError(f"No artifacts found{suffix}") from e
        logger.info(f"Last artifact ID: {artifact.id} (created {artifact.created_at.isoformat()})")
        return artifact

    def download_and_extract(self, artifact_id: int, destination: Path) -> None:
        """
        Download an artifact zip and extract it into `destination`.

        Args:
            artifact_id: GitHub artifact ID
            destination: Workspace directory
        """
        endpoint = f"/repos/{self.owner}/{self.repo}/actions/artifacts/{artifact_id}/zip"
        with tempfile.TemporaryDirectory() as tmp:
            archive_path = Path(tmp) / "artifact.zip"
            try:
                with self.session.stream("GET", endpoint) as response:
                    if response.status_code != 200:
                        raise PreconditionFailedError(f"Artifact download returned {response.status_code}")
                    with open(archive_path, "wb") as f:
                        for chunk in response.iter_bytes(chunk_size=65536):
                            f.write(chunk)
            except httpx.HTTPError as e:
                raise PreconditionFailedError(f"Artifact download failed: {type(e).__name__}: {e}") from e
            except OSError as e:
                raise PreconditionFailedError(f"Cannot store artifact archive: {e}") from e

            extract_archive(archive_path, destination)
        logger.info("Artifact extracted!")
