"""Test fixtures for dynamic_certs tests."""

import ipaddress
import logging
from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.x509.oid import NameOID

from dynamic_certs.lib.artifact_paths import ArtifactPaths
from dynamic_certs.lib.config import ProvisioningConfig
from dynamic_certs.lib.errors import CommandFailureError
from dynamic_certs.lib.models import CommandInvocation, CommandResult
from dynamic_certs.lib.process_runner import ProcessRunner


class RecordingRunner(ProcessRunner):
    """Records invocations instead of spawning processes.

    Any ``-out <path>`` argument is materialised as a file so that steps
    which chmod their output behave as they would against real openssl.
    """

    def __init__(
        self,
        fail_when: Callable[[CommandInvocation], bool] | None = None,
        exit_code: int = 1,
    ) -> None:
        super().__init__()
        self.invocations: list[CommandInvocation] = []
        self.fail_when = fail_when
        self.exit_code = exit_code

    def run(self, invocation: CommandInvocation) -> CommandResult:
        self.invocations.append(invocation)
        if self.fail_when is not None and self.fail_when(invocation):
            raise CommandFailureError(self.exit_code, invocation.render(), "boom")

        argv = invocation.argv
        if "-out" in argv:
            out = Path(argv[argv.index("-out") + 1])
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_text(invocation.render())
        return CommandResult(exit_code=0)

    def outputs(self) -> list[Path]:
        """Return every ``-out`` path in invocation order."""
        return [
            Path(inv.argv[inv.argv.index("-out") + 1])
            for inv in self.invocations
            if "-out" in inv.argv
        ]

    def subcommands(self) -> list[str]:
        """Return argv[1] of every invocation."""
        return [inv.argv[1] for inv in self.invocations]


@pytest.fixture
def recording_runner() -> RecordingRunner:
    """Return runner that records invocations and creates output files."""
    return RecordingRunner()


@pytest.fixture
def provisioning_config(tmp_path: Path) -> ProvisioningConfig:
    """Return configuration rooted in a temporary directory."""
    return ProvisioningConfig(
        use_openssl=True,
        node_alternative_names="db1 10.0.0.9",
        certs_dir=tmp_path / "certs",
        internal_dir=tmp_path / "internal",
        openssl_config_dir=tmp_path / "config",
        verify_bundle=False,
    )


@pytest.fixture
def artifact_paths(provisioning_config: ProvisioningConfig) -> ArtifactPaths:
    """Return artifact paths with both roots created."""
    paths = ArtifactPaths.from_config(provisioning_config)
    paths.ensure_directories()
    return paths


@pytest.fixture
def captured_logs(caplog: pytest.LogCaptureFixture) -> Iterator[pytest.LogCaptureFixture]:
    """Capture dynamic_certs logs, which do not propagate by default."""
    logger = logging.getLogger("dynamic_certs")
    logger.propagate = True
    try:
        with caplog.at_level(logging.DEBUG, logger="dynamic_certs"):
            yield caplog
    finally:
        logger.propagate = False


def _generate_key() -> RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def _write_key(path: Path, key: RSAPrivateKey, mode: int = 0o400) -> None:
    path.unlink(missing_ok=True)
    path.write_bytes(
        key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    path.chmod(mode)


def _write_cert(path: Path, cert: x509.Certificate) -> None:
    path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))


@pytest.fixture(scope="session")
def ca_key() -> RSAPrivateKey:
    """Generate RSA private key for the test CA."""
    return _generate_key()


@pytest.fixture(scope="session")
def ca_cert(ca_key: RSAPrivateKey) -> x509.Certificate:
    """Generate self-signed test CA certificate."""
    subject = x509.Name(
        [
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Cockroach"),
            x509.NameAttribute(NameOID.COMMON_NAME, "Cockroach CA"),
        ]
    )
    now = datetime.now(UTC)
    return (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(ca_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + timedelta(days=1))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(ca_key, hashes.SHA256())
    )


def issue_certificate(
    issuer_cert: x509.Certificate,
    issuer_key: RSAPrivateKey,
    subject_key: RSAPrivateKey,
    common_name: str | None = None,
    dns_names: list[str] | None = None,
    ip_addresses: list[str] | None = None,
) -> x509.Certificate:
    """Issue an end-entity certificate the way ``openssl ca`` would."""
    attributes = [x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Cockroach")]
    if common_name:
        attributes.append(x509.NameAttribute(NameOID.COMMON_NAME, common_name))

    now = datetime.now(UTC)
    builder = (
        x509.CertificateBuilder()
        .subject_name(x509.Name(attributes))
        .issuer_name(issuer_cert.subject)
        .public_key(subject_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + timedelta(days=1))
    )

    general_names: list[x509.GeneralName] = [x509.DNSName(name) for name in dns_names or []]
    general_names += [x509.IPAddress(ipaddress.ip_address(ip)) for ip in ip_addresses or []]
    if general_names:
        builder = builder.add_extension(
            x509.SubjectAlternativeName(general_names), critical=False
        )
    return builder.sign(issuer_key, hashes.SHA256())


@pytest.fixture(scope="session")
def leaf_key() -> RSAPrivateKey:
    """Generate one RSA key reused for node and client certificates."""
    return _generate_key()


@pytest.fixture
def bundle_on_disk(
    artifact_paths: ArtifactPaths,
    ca_key: RSAPrivateKey,
    ca_cert: x509.Certificate,
    leaf_key: RSAPrivateKey,
) -> ArtifactPaths:
    """Write a consistent bundle for node SANs {node, db1, 10.0.0.9} and client root.

    Creates:
        {internal}/ca.key
        {certs}/ca.crt, node.key, node.crt, client.root.key, client.root.crt
    """
    _write_key(artifact_paths.ca_key, ca_key)
    _write_cert(artifact_paths.ca_cert, ca_cert)

    _write_key(artifact_paths.node_key, leaf_key)
    node_cert = issue_certificate(
        ca_cert, ca_key, leaf_key, dns_names=["node", "db1"], ip_addresses=["10.0.0.9"]
    )
    _write_cert(artifact_paths.node_cert, node_cert)

    _write_key(artifact_paths.client_key("root"), leaf_key)
    _write_cert(
        artifact_paths.client_cert("root"),
        issue_certificate(ca_cert, ca_key, leaf_key, common_name="root"),
    )
    return artifact_paths


@pytest.fixture
def write_certificate() -> Callable[[Path, x509.Certificate], None]:
    """Return helper writing a PEM certificate to a path."""
    return _write_cert


@pytest.fixture
def write_key() -> Callable[..., None]:
    """Return helper writing a PEM private key with a given mode."""
    return _write_key


@pytest.fixture
def issue_cert() -> Callable[..., x509.Certificate]:
    """Return helper issuing an end-entity certificate."""
    return issue_certificate
