"""Configuration management for the publisher, read from environment variables."""

import os
from pathlib import Path
from typing import Mapping, Optional

from common.constants import (
    DEFAULT_BEE_API_URL,
    DEFAULT_ERROR_DOCUMENT,
    DEFAULT_GITHUB_API_URL,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_INDEX_DOCUMENT,
    DEFAULT_OUT_DIR,
)
from common.types import ManifestOptions
from publisher.exceptions import ConfigurationError


TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got '{raw}'")


class Config:
    """Publisher settings resolved from an environment mapping."""

    REQUIRED = ("OWNER", "REPO", "V3_WALLET", "V3_PASS", "TOPIC")

    DEFAULT_CONFIG = {
        "BUILD_NAME": "",
        "GITHUB_TOKEN": "",
        "GITHUB_API_URL": DEFAULT_GITHUB_API_URL,
        "OUT_DIR": DEFAULT_OUT_DIR,
        "BEE_API_URL": DEFAULT_BEE_API_URL,
        "HTTP_TIMEOUT": str(DEFAULT_HTTP_TIMEOUT_SECONDS),
        "INDEX_DOCUMENT": DEFAULT_INDEX_DOCUMENT,
        "ERROR_DOCUMENT": DEFAULT_ERROR_DOCUMENT,
        "SWARM_PIN": "true",
        "SWARM_ENCRYPT": "false",
        "SWARM_DEFERRED": "true",
        "SWARM_REDUNDANCY_LEVEL": "",
        "SYNC_MAX_DURATION": "",
    }

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        """
        Initialize configuration.

        Args:
            environ: Mapping to read settings from (defaults to os.environ)
        """
        source = os.environ if environ is None else environ
        self.data = self.DEFAULT_CONFIG.copy()
        for key in (*self.REQUIRED, *self.DEFAULT_CONFIG):
            value = source.get(key)
            if value is not None and value != "":
                self.data[key] = value

    def validate(self) -> None:
        """
        Check that every required setting is present and typed values parse.

        Raises:
            ConfigurationError: Listing all missing variables, or the first bad value
        """
        missing = [key for key in self.REQUIRED if not self.data.get(key)]
        if missing:
            raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

        self.get_timeout()
        self.get_manifest_options()
        self.get_sync_max_duration()

    @property
    def owner(self) -> str:
        return self.data.get("OWNER", "")

    @property
    def repo(self) -> str:
        return self.data.get("REPO", "")

    @property
    def build_name(self) -> Optional[str]:
        return self.data["BUILD_NAME"] or None

    @property
    def github_token(self) -> Optional[str]:
        return self.data["GITHUB_TOKEN"] or None

    @property
    def github_api_url(self) -> str:
        return self.data["GITHUB_API_URL"].rstrip("/")

    @property
    def bee_api_url(self) -> str:
        return self.data["BEE_API_URL"].rstrip("/")

    @property
    def out_dir(self) -> Path:
        return Path(self.data["OUT_DIR"])

    @property
    def keystore(self) -> str:
        return self.data.get("V3_WALLET", "")

    @property
    def passphrase(self) -> str:
        return self.data.get("V3_PASS", "")

    @property
    def topic(self) -> str:
        return self.data.get("TOPIC", "")

    def get_timeout(self) -> float:
        """
        Get HTTP request timeout in seconds.

        Returns:
            Timeout value in seconds
        """
        raw = self.data["HTTP_TIMEOUT"]
        try:
            timeout = float(raw)
        except ValueError:
            raise ConfigurationError(f"HTTP_TIMEOUT must be a number, got '{raw}'")
        if timeout <= 0:
            raise ConfigurationError("HTTP_TIMEOUT must be positive")
        return timeout

    def get_sync_max_duration(self) -> Optional[float]:
        """
        Get the optional wall-clock ceiling for the replication wait.

        Returns:
            Seconds, or None when only stall detection applies
        """
        raw = self.data["SYNC_MAX_DURATION"]
        if not raw:
            return None
        try:
            duration = float(raw)
        except ValueError:
            raise ConfigurationError(f"SYNC_MAX_DURATION must be a number, got '{raw}'")
        if duration <= 0:
            raise ConfigurationError("SYNC_MAX_DURATION must be positive")
        return duration

    def get_manifest_options(self) -> ManifestOptions:
        """
        Build website upload options.

        Returns:
            ManifestOptions for the collection upload
        """
        redundancy_raw = self.data["SWARM_REDUNDANCY_LEVEL"]
        redundancy_level = None
        if redundancy_raw:
            try:
                redundancy_level = int(redundancy_raw)
            except ValueError:
                raise ConfigurationError(f"SWARM_REDUNDANCY_LEVEL must be an integer, got '{redundancy_raw}'")
            if not 0 <= redundancy_level <= 4:
                raise ConfigurationError("SWARM_REDUNDANCY_LEVEL must be between 0 and 4")

        return ManifestOptions(
            index_document=self.data["INDEX_DOCUMENT"],
            error_document=self.data["ERROR_DOCUMENT"],
            pin=_parse_bool("SWARM_PIN", self.data["SWARM_PIN"]),
            encrypt=_parse_bool("SWARM_ENCRYPT", self.data["SWARM_ENCRYPT"]),
            deferred=_parse_bool("SWARM_DEFERRED", self.data["SWARM_DEFERRED"]),
            redundancy_level=redundancy_level,
        )
