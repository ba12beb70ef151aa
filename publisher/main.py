"""Entry point: publish the latest build artifact to Swarm and advance the feed."""

import os
import sys
from typing import List, Mapping, Optional

from common.logging_config import setup_logging
from publisher.artifacts import GitHubArtifactClient
from publisher.bee_client import BeeGateway
from publisher.config import Config
from publisher.exceptions import ConfigurationError
from publisher.identity import SigningIdentity
from publisher.orchestrator import Orchestrator, PublishContext, PublishOutcome
from publisher.utils import LoggingProgressReporter, TerminalProgressReporter


def run(config: Config) -> PublishOutcome:
    """
    Build the clients for one run, execute the pipeline and close the clients.

    Raises:
        ConfigurationError: If the configuration or keystore is invalid
    """
    config.validate()
    identity = SigningIdentity.from_keystore(config.keystore, config.passphrase)
    context = PublishContext.from_config(config, identity)
    reporter = TerminalProgressReporter() if sys.stdout.isatty() else LoggingProgressReporter()

    with GitHubArtifactClient(
        config.owner,
        config.repo,
        token=config.github_token,
        base_url=config.github_api_url,
        timeout=config.get_timeout(),
    ) as artifacts, BeeGateway(config.bee_api_url, timeout=config.get_timeout()) as gateway:
        orchestrator = Orchestrator(context, artifacts, gateway, reporter=reporter)
        return orchestrator.run()


def main(argv: Optional[List[str]] = None, environ: Optional[Mapping[str, str]] = None) -> int:
    """Entry point for the publisher. Returns the process exit code."""
    argv = sys.argv[1:] if argv is None else argv
    environ = os.environ if environ is None else environ

    log_level = 'DEBUG' if '--debug' in argv else environ.get('LOG_LEVEL', 'INFO')
    logger = setup_logging('publisher', log_level=log_level)

    if '--debug' in argv:
        logger.info("Debug logging enabled")

    try:
        outcome = run(Config(environ))
    except ConfigurationError as e:
        logger.error(f"Publish failed [{e.code}]: {e}")
        return e.exit_code
    except Exception as e:
        logger.error(f"Publisher error: {e}", exc_info=True)
        raise

    if outcome.success:
        logger.info(outcome.message)
    return outcome.exit_code


if __name__ == "__main__":
    sys.exit(main())
