"""Common pipeline shape shared by the certificate engine backends."""

from abc import ABC, abstractmethod
from collections.abc import Mapping

from .artifact_paths import ArtifactPaths
from .config import ProvisioningConfig
from .logging_config import LOGGER
from .models import ArtifactSet, CommandInvocation, CommandResult, IdentitySet
from .process_runner import ProcessRunner


class EngineBackend(ABC):
    """Generates a CA, a node certificate and client certificates.

    Subclasses supply the individual steps; ``provision`` fixes their order.
    The CA is created exactly once and every later step signs with it.
    """

    name = "engine"

    def __init__(
        self,
        config: ProvisioningConfig,
        paths: ArtifactPaths,
        runner: ProcessRunner,
    ) -> None:
        self.config = config
        self.paths = paths
        self.runner = runner

    def provision(self, identities: IdentitySet) -> list[ArtifactSet]:
        """Run the full pipeline for the given identities.

        Args:
            identities: Resolved node SANs and client usernames

        Returns:
            Artifact sets in creation order (CA, node, clients)

        Raises:
            ProvisioningError: If any step fails; later steps are not run
        """
        LOGGER.info("Provisioning certificates with %s backend", self.name)
        artifacts = [self.create_ca()]
        artifacts.append(self.create_node(identities))
        for username in identities.sorted_usernames():
            artifacts.append(self.create_client(username))
        return artifacts

    @abstractmethod
    def create_ca(self) -> ArtifactSet:
        """Create the CA key and self-signed certificate."""

    @abstractmethod
    def create_node(self, identities: IdentitySet) -> ArtifactSet:
        """Create the node key and certificate covering every node SAN."""

    @abstractmethod
    def create_client(self, username: str) -> ArtifactSet:
        """Create the key, certificate and export files for one client."""

    def _run(self, *argv: str, env: Mapping[str, str] | None = None) -> CommandResult:
        return self.runner.run(CommandInvocation(argv=tuple(argv), env=env))
