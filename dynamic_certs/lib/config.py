"""Provisioning configuration resolved once from the process environment."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigurationError

DEFAULT_USERNAME = "root"
ORGANIZATION_NAME = "Cockroach"

DEFAULT_CERTS_DIR = Path("/.cockroach-certs")
DEFAULT_INTERNAL_DIR = Path("/.cockroach-internal")
DEFAULT_OPENSSL_CONFIG_DIR = Path("/config")

_TRUE_VALUES = {"true", "yes", "on", "1"}
_FALSE_VALUES = {"false", "no", "off", "0"}


def parse_bool(name: str, raw: str | None, default: bool) -> bool:
    """Parse a boolean environment value.

    Args:
        name: Variable name, used in the error message
        raw: Raw value, None when unset
        default: Value used when unset or blank

    Returns:
        Parsed boolean

    Raises:
        ConfigurationError: If the value is not a recognised boolean
    """
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got [{raw}]")


def parse_positive_int(name: str, raw: str | None, default: int) -> int:
    """Parse a strictly positive integer environment value."""
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got [{raw}]") from e
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got [{raw}]")
    return value


def _path(raw: str | None, default: Path) -> Path:
    if raw is None or not raw.strip():
        return default
    return Path(raw.strip())


@dataclass(frozen=True)
class ProvisioningConfig:
    """Immutable provisioning settings.

    Built once at process start and passed explicitly into the identity
    builder, the backends and the orchestrator.
    """

    use_openssl: bool = False
    node_alternative_names: str | None = None
    require_node_names: bool = False
    client_username: str = DEFAULT_USERNAME
    pkcs12_password: str | None = field(default=None, repr=False)
    certs_dir: Path = DEFAULT_CERTS_DIR
    internal_dir: Path = DEFAULT_INTERNAL_DIR
    openssl_config_dir: Path = DEFAULT_OPENSSL_CONFIG_DIR
    openssl_binary: str = "openssl"
    cockroach_binary: str = "/cockroach"
    key_size: int = 2048
    ca_validity_days: int = 365
    overwrite: bool = False
    verify_bundle: bool = True
    log_level: str = "INFO"

    @property
    def ca_config_path(self) -> Path:
        return self.openssl_config_dir / "ca.cnf"

    @property
    def csr_config_path(self) -> Path:
        return self.openssl_config_dir / "csr.cnf"

    @property
    def index_path(self) -> Path:
        return self.openssl_config_dir / "index.txt"

    @property
    def serial_path(self) -> Path:
        return self.openssl_config_dir / "serial"

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> "ProvisioningConfig":
        """Build configuration from an environment mapping.

        Args:
            environ: Environment variables, usually ``os.environ``

        Returns:
            Resolved configuration

        Raises:
            ConfigurationError: If any value cannot be parsed
        """
        username = (environ.get("CLIENT_USERNAME") or "").strip() or DEFAULT_USERNAME

        log_level = (environ.get("LOG_LEVEL") or "INFO").strip().upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ConfigurationError(f"LOG_LEVEL is not a logging level, got [{log_level}]")

        password = environ.get("PKCS12_PASSWORD") or None

        return cls(
            use_openssl=parse_bool("USE_OPENSSL", environ.get("USE_OPENSSL"), False),
            node_alternative_names=environ.get("NODE_ALTERNATIVE_NAMES"),
            require_node_names=parse_bool(
                "NODE_ALTERNATIVE_NAMES_REQUIRED",
                environ.get("NODE_ALTERNATIVE_NAMES_REQUIRED"),
                False,
            ),
            client_username=username,
            pkcs12_password=password,
            certs_dir=_path(environ.get("CERTS_DIR"), DEFAULT_CERTS_DIR),
            internal_dir=_path(environ.get("INTERNAL_DIR"), DEFAULT_INTERNAL_DIR),
            openssl_config_dir=_path(
                environ.get("OPENSSL_CONFIG_DIR"), DEFAULT_OPENSSL_CONFIG_DIR
            ),
            openssl_binary=(environ.get("OPENSSL_BINARY") or "openssl").strip(),
            cockroach_binary=(environ.get("COCKROACH_BINARY") or "/cockroach").strip(),
            key_size=parse_positive_int("KEY_SIZE", environ.get("KEY_SIZE"), 2048),
            ca_validity_days=parse_positive_int(
                "CA_VALIDITY_DAYS", environ.get("CA_VALIDITY_DAYS"), 365
            ),
            overwrite=parse_bool("OVERWRITE_CERTS", environ.get("OVERWRITE_CERTS"), False),
            verify_bundle=parse_bool("VERIFY_BUNDLE", environ.get("VERIFY_BUNDLE"), True),
            log_level=log_level,
        )
