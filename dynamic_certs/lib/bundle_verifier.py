"""Consistency checks for a generated certificate bundle."""

import stat
from pathlib import Path

from cryptography import x509
from cryptography.exceptions import InvalidSignature

from .artifact_paths import ArtifactPaths
from .errors import BundleVerificationError
from .logging_config import LOGGER
from .models import IdentitySet, SanKind, SubjectAltName


def load_certificate(path: Path) -> x509.Certificate:
    """Load a PEM certificate from disk."""
    if not path.exists():
        raise BundleVerificationError(f"certificate not found: {path}")
    try:
        return x509.load_pem_x509_certificate(path.read_bytes())
    except ValueError as e:
        raise BundleVerificationError(f"certificate not parseable: {path}") from e


def verify_issued_by(cert: x509.Certificate, issuer: x509.Certificate, label: str) -> None:
    """Check that ``cert`` carries a valid signature from ``issuer``."""
    try:
        cert.verify_directly_issued_by(issuer)
    except (ValueError, TypeError, InvalidSignature) as e:
        raise BundleVerificationError(f"{label} certificate is not signed by the CA") from e


def extract_subject_alt_names(cert: x509.Certificate) -> set[SubjectAltName]:
    """Return the DNS and IP SAN entries of a certificate."""
    try:
        ext = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    except x509.ExtensionNotFound:
        return set()

    names = {SubjectAltName(SanKind.DNS, name) for name in ext.get_values_for_type(x509.DNSName)}
    names |= {
        SubjectAltName(SanKind.IP, str(address))
        for address in ext.get_values_for_type(x509.IPAddress)
    }
    return names


def extract_common_name(cert: x509.Certificate) -> str | None:
    attributes = cert.subject.get_attributes_for_oid(x509.NameOID.COMMON_NAME)
    if not attributes:
        return None
    value = attributes[0].value
    return value if isinstance(value, str) else value.decode()


def verify_key_permissions(path: Path) -> None:
    """Reject a private key readable or writable by group or others."""
    if not path.exists():
        raise BundleVerificationError(f"private key not found: {path}")
    mode = stat.S_IMODE(path.stat().st_mode)
    if mode & (stat.S_IRWXG | stat.S_IRWXO):
        raise BundleVerificationError(f"private key {path} has permissive mode {mode:o}")


def verify_bundle(paths: ArtifactPaths, identities: IdentitySet) -> None:
    """Verify the bundle on disk matches the requested identities.

    Checks:
        - node and client certificates are directly issued by the CA
        - the node certificate covers every requested SAN
        - each client certificate's CN is its username
        - CA, node and client keys have no group/other permission bits

    Args:
        paths: Artifact locations
        identities: Identities the run was asked to certify

    Raises:
        BundleVerificationError: On the first inconsistency found
    """
    ca_cert = load_certificate(paths.ca_cert)
    verify_key_permissions(paths.ca_key)

    node_cert = load_certificate(paths.node_cert)
    verify_issued_by(node_cert, ca_cert, "node")
    missing = set(identities.node_sans) - extract_subject_alt_names(node_cert)
    if missing:
        rendered = ",".join(str(san) for san in sorted(missing))
        raise BundleVerificationError(f"node certificate is missing SANs: {rendered}")
    verify_key_permissions(paths.node_key)

    for username in identities.sorted_usernames():
        client_cert = load_certificate(paths.client_cert(username))
        verify_issued_by(client_cert, ca_cert, f"client {username}")
        common_name = extract_common_name(client_cert)
        if common_name != username:
            raise BundleVerificationError(
                f"client certificate CN [{common_name}] does not match username [{username}]"
            )
        verify_key_permissions(paths.client_key(username))

    LOGGER.info(
        "Verified bundle: node SANs %s, clients %s",
        identities.san_string(),
        ",".join(identities.sorted_usernames()),
    )
