"""Certificate generation through the OpenSSL command line toolkit."""

from enum import Enum
from pathlib import Path

from .config import ORGANIZATION_NAME
from .engine_backend import EngineBackend
from .logging_config import LOGGER
from .models import ArtifactSet, IdentitySet

PKCS12_PASSWORD_ENV = "DYNAMIC_CERTS_PKCS12_PASSWORD"

SIGNING_POLICY = "signing_policy"
SIGNING_EXTENSIONS = "signing_node_req"

KEY_FILE_MODE = 0o400
BUNDLE_FILE_MODE = 0o600


class Outform(str, Enum):
    PEM = "PEM"
    DER = "DER"


def build_subject(common_name: str | None = None) -> str:
    """Return an OpenSSL ``-subj`` value with the organization and optional CN."""
    subject = f"/O={ORGANIZATION_NAME}"
    if common_name:
        subject += f"/CN={common_name}"
    return subject


class OpenSSLBackend(EngineBackend):
    """Runs the key, CSR, signing and export steps one ``openssl`` call at a time.

    Serial and index bookkeeping for ``openssl ca`` lives in the OpenSSL
    config directory and is reset after the CA is created so a re-run against
    an existing directory starts from a clean database.
    """

    name = "openssl"

    def create_ca(self) -> ArtifactSet:
        self.generate_key(self.paths.ca_key)
        self._run(
            self.config.openssl_binary,
            "req",
            "-new",
            "-x509",
            "-config",
            str(self.config.ca_config_path),
            "-key",
            str(self.paths.ca_key),
            "-out",
            str(self.paths.ca_cert),
            "-days",
            str(self.config.ca_validity_days),
            "-batch",
        )
        self.reset_serial_index()
        return self.paths.ca_artifacts()

    def create_node(self, identities: IdentitySet) -> ArtifactSet:
        self.generate_key(self.paths.node_key)

        subject_alt_name = identities.san_string()
        LOGGER.debug("Subject Alt Name = [%s]", subject_alt_name)

        self.generate_csr(
            self.paths.node_csr,
            self.paths.node_key,
            subject_alt_name=subject_alt_name,
        )
        self.sign_certificate(self.paths.node_cert, self.paths.node_csr)
        return self.paths.node_artifacts(with_csr=True)

    def create_client(self, username: str) -> ArtifactSet:
        key_path = self.paths.client_key(username)
        csr_path = self.paths.client_csr(username)
        cert_path = self.paths.client_cert(username)

        self.generate_key(key_path)
        self.generate_csr(csr_path, key_path, common_name=username)
        self.sign_certificate(cert_path, csr_path)
        with_pkcs12 = self.export_interchange_formats(username)
        return self.paths.client_artifacts(username, with_csr=True, with_pkcs12=with_pkcs12)

    def generate_key(self, out: Path) -> None:
        """Generate an RSA key and restrict it to owner read-only.

        A key left by a previous run is removed first because its 0400 mode
        would stop ``openssl`` from overwriting it.
        """
        out.unlink(missing_ok=True)
        self._run(
            self.config.openssl_binary,
            "genpkey",
            "-quiet",
            "-algorithm",
            "RSA",
            "-pkeyopt",
            f"rsa_keygen_bits:{self.config.key_size}",
            "-outform",
            Outform.PEM.value,
            "-out",
            str(out),
        )
        out.chmod(KEY_FILE_MODE)

    def reset_serial_index(self) -> None:
        """Start a fresh ``openssl ca`` database; missing files are fine."""
        index_path = self.config.index_path
        serial_path = self.config.serial_path
        stale = [
            index_path,
            index_path.with_name(index_path.name + ".attr"),
            index_path.with_name(index_path.name + ".old"),
            serial_path,
            serial_path.with_name(serial_path.name + ".old"),
        ]
        for path in stale:
            path.unlink(missing_ok=True)

        index_path.parent.mkdir(parents=True, exist_ok=True)
        index_path.write_text("")
        serial_path.write_text("01\n")
        LOGGER.debug("Reset CA database at %s", index_path.parent)

    def generate_csr(
        self,
        out: Path,
        key: Path,
        common_name: str | None = None,
        subject_alt_name: str | None = None,
    ) -> None:
        """Create a CSR; the SAN extension is only added when given."""
        args = [
            self.config.openssl_binary,
            "req",
            "-new",
            "-config",
            str(self.config.csr_config_path),
            "-subj",
            build_subject(common_name),
        ]
        if subject_alt_name:
            args += ["-addext", f"subjectAltName={subject_alt_name}"]
        args += ["-key", str(key), "-out", str(out), "-batch"]
        self._run(*args)

    def sign_certificate(self, out: Path, csr: Path) -> None:
        self._run(
            self.config.openssl_binary,
            "ca",
            "-config",
            str(self.config.ca_config_path),
            "-keyfile",
            str(self.paths.ca_key),
            "-cert",
            str(self.paths.ca_cert),
            "-policy",
            SIGNING_POLICY,
            "-extensions",
            SIGNING_EXTENSIONS,
            "-out",
            str(out),
            "-outdir",
            str(self.paths.certs_dir),
            "-in",
            str(csr),
            "-batch",
        )

    def export_interchange_formats(self, username: str) -> bool:
        """Write the PKCS#8 DER key and, given a password, the PKCS#12 bundle.

        Returns:
            True if a PKCS#12 bundle was written
        """
        key_path = self.paths.client_key(username)
        pkcs8_path = self.paths.client_pkcs8(username)

        pkcs8_path.unlink(missing_ok=True)
        self._run(
            self.config.openssl_binary,
            "pkcs8",
            "-topk8",
            "-inform",
            Outform.PEM.value,
            "-outform",
            Outform.DER.value,
            "-in",
            str(key_path),
            "-out",
            str(pkcs8_path),
            "-nocrypt",
        )
        pkcs8_path.chmod(KEY_FILE_MODE)

        if not self.config.pkcs12_password:
            LOGGER.warning(
                "PKCS12_PASSWORD not set, skipping PKCS#12 bundle for %s", username
            )
            return False

        pkcs12_path = self.paths.client_pkcs12(username)
        self._run(
            self.config.openssl_binary,
            "pkcs12",
            "-export",
            "-in",
            str(self.paths.client_cert(username)),
            "-inkey",
            str(key_path),
            "-out",
            str(pkcs12_path),
            "-passout",
            f"env:{PKCS12_PASSWORD_ENV}",
            env={PKCS12_PASSWORD_ENV: self.config.pkcs12_password},
        )
        pkcs12_path.chmod(BUNDLE_FILE_MODE)
        return True
