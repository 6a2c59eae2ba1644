"""Top-level control of one certificate provisioning run."""

import time

from .artifact_paths import ArtifactPaths
from .bundle_verifier import verify_bundle
from .cockroach_backend import CockroachBackend
from .config import ProvisioningConfig
from .engine_backend import EngineBackend
from .errors import CommandFailureError, ProvisioningError
from .identity import build_identity_set
from .logging_config import LOGGER
from .models import ArtifactSet, RunResult
from .openssl_backend import OpenSSLBackend
from .process_runner import ProcessRunner


def select_backend(
    config: ProvisioningConfig, paths: ArtifactPaths, runner: ProcessRunner
) -> EngineBackend:
    """Pick the OpenSSL or cockroach backend from the configuration flag."""
    if config.use_openssl:
        return OpenSSLBackend(config, paths, runner)
    return CockroachBackend(config, paths, runner)


class Orchestrator:
    """Resolves identities, runs one backend and reports the outcome."""

    def __init__(
        self,
        config: ProvisioningConfig,
        runner: ProcessRunner | None = None,
        backend: EngineBackend | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            config: Resolved provisioning configuration
            runner: Process runner, a blocking ProcessRunner by default
            backend: Backend override, otherwise chosen from ``config.use_openssl``
        """
        self.config = config
        self.paths = ArtifactPaths.from_config(config)
        self.runner = runner or ProcessRunner()
        self.backend = backend or select_backend(config, self.paths, self.runner)

    def run(self) -> RunResult:
        """Provision the full bundle; never raises.

        Any error aborts the remaining steps. Artifacts already written are
        left in place and nothing is retried.

        Returns:
            RunResult with outcome, elapsed time and produced artifacts
        """
        started = time.perf_counter()
        artifacts: list[ArtifactSet] = []
        error: Exception | None = None

        try:
            identities = build_identity_set(
                self.config.node_alternative_names,
                self.config.client_username,
                self.config.require_node_names,
            )
            LOGGER.info("USE_OPENSSL is [%s]", self.config.use_openssl)
            LOGGER.info("NODE_ALTERNATIVE_NAMES is %s", identities.san_string())
            LOGGER.info("CLIENT_USERNAMES are %s", ",".join(identities.sorted_usernames()))

            self.paths.ensure_directories()
            artifacts = self.backend.provision(identities)

            if self.config.verify_bundle:
                verify_bundle(self.paths, identities)

        except CommandFailureError as e:
            error = e
            LOGGER.error(
                "Command failed with exit code [%d]: %s\n%s%s",
                e.exit_code,
                e.command,
                e.stdout,
                e.stderr,
            )
        except ProvisioningError as e:
            error = e
            LOGGER.error("Certificate provisioning failed: %s", e)
        except OSError as e:
            error = e
            LOGGER.error("Filesystem error during provisioning: %s", e)
        except Exception as e:
            error = e
            LOGGER.exception("Unexpected error during provisioning: %s", e)

        result = RunResult(
            succeeded=error is None,
            elapsed_seconds=time.perf_counter() - started,
            artifacts=artifacts,
            error=error,
        )

        if result.succeeded:
            for artifact in result.artifacts:
                LOGGER.info(
                    "  %s: %s",
                    artifact.identity,
                    ", ".join(str(path) for path in artifact.all_paths()),
                )
            LOGGER.info(
                "Certificate Generation Complete in %d milliseconds!", result.elapsed_millis
            )
        else:
            LOGGER.error(
                "Certificate Generation Failed after %d milliseconds", result.elapsed_millis
            )
        return result
