"""Fixed file naming scheme for the generated PKI bundle."""

from dataclasses import dataclass
from pathlib import Path

from .config import ProvisioningConfig
from .models import ArtifactSet


@dataclass(frozen=True)
class ArtifactPaths:
    """Maps logical artifact names onto the internal and external roots.

    The internal root holds secrets that never leave the container (CA key,
    CSR intermediates). The external root is shared with the cluster.
    """

    internal_dir: Path
    certs_dir: Path

    @classmethod
    def from_config(cls, config: ProvisioningConfig) -> "ArtifactPaths":
        return cls(internal_dir=config.internal_dir, certs_dir=config.certs_dir)

    @property
    def ca_key(self) -> Path:
        return self.internal_dir / "ca.key"

    @property
    def ca_cert(self) -> Path:
        return self.certs_dir / "ca.crt"

    @property
    def node_key(self) -> Path:
        return self.certs_dir / "node.key"

    @property
    def node_csr(self) -> Path:
        return self.internal_dir / "node.csr"

    @property
    def node_cert(self) -> Path:
        return self.certs_dir / "node.crt"

    def client_key(self, username: str) -> Path:
        return self.certs_dir / f"client.{username.lower()}.key"

    def client_csr(self, username: str) -> Path:
        return self.internal_dir / f"client.{username.lower()}.csr"

    def client_cert(self, username: str) -> Path:
        return self.certs_dir / f"client.{username.lower()}.crt"

    def client_pkcs8(self, username: str) -> Path:
        return self.certs_dir / f"client.{username.lower()}.key.pk8"

    def client_pkcs12(self, username: str) -> Path:
        return self.certs_dir / f"client.{username.lower()}.p12"

    def ca_artifacts(self) -> ArtifactSet:
        return ArtifactSet(identity="ca", key_path=self.ca_key, cert_path=self.ca_cert)

    def node_artifacts(self, with_csr: bool) -> ArtifactSet:
        return ArtifactSet(
            identity="node",
            key_path=self.node_key,
            cert_path=self.node_cert,
            csr_path=self.node_csr if with_csr else None,
        )

    def client_artifacts(
        self, username: str, with_csr: bool, with_pkcs12: bool
    ) -> ArtifactSet:
        """Return the artifact set for one client username."""
        return ArtifactSet(
            identity=f"client.{username.lower()}",
            key_path=self.client_key(username),
            cert_path=self.client_cert(username),
            csr_path=self.client_csr(username) if with_csr else None,
            pkcs8_path=self.client_pkcs8(username),
            pkcs12_path=self.client_pkcs12(username) if with_pkcs12 else None,
        )

    def ensure_directories(self) -> None:
        """Create both roots if missing; the internal root is owner-only."""
        self.internal_dir.mkdir(parents=True, exist_ok=True)
        self.internal_dir.chmod(0o700)
        self.certs_dir.mkdir(parents=True, exist_ok=True)
