"""Certificate generation through the ``cockroach cert`` subcommands."""

from .engine_backend import EngineBackend
from .models import ArtifactSet, IdentitySet


class CockroachBackend(EngineBackend):
    """Delegates CSR handling and serial bookkeeping to the database CLI."""

    name = "cockroach"

    def _common_flags(self) -> list[str]:
        flags = [
            "--certs-dir",
            str(self.paths.certs_dir),
            "--ca-key",
            str(self.paths.ca_key),
        ]
        if self.config.overwrite:
            flags.append("--overwrite")
        return flags

    def create_ca(self) -> ArtifactSet:
        args = [self.config.cockroach_binary, "cert", "create-ca", *self._common_flags()]
        if self.config.overwrite:
            args.append("--allow-ca-key-reuse")
        self._run(*args)
        return self.paths.ca_artifacts()

    def create_node(self, identities: IdentitySet) -> ArtifactSet:
        self._run(
            self.config.cockroach_binary,
            "cert",
            "create-node",
            *identities.san_values(),
            *self._common_flags(),
        )
        return self.paths.node_artifacts(with_csr=False)

    def create_client(self, username: str) -> ArtifactSet:
        self._run(
            self.config.cockroach_binary,
            "cert",
            "create-client",
            username,
            *self._common_flags(),
            "--also-generate-pkcs8-key",
        )
        return self.paths.client_artifacts(username, with_csr=False, with_pkcs12=False)
