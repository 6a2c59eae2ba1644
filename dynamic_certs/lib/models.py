"""Value objects shared by the identity builder, backends and orchestrator."""

import shlex
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .config import DEFAULT_USERNAME


class SanKind(str, Enum):
    """Subject Alternative Name entry type."""

    DNS = "DNS"
    IP = "IP"


@dataclass(frozen=True, order=True)
class SubjectAltName:
    """Tagged SAN entry, rendered as ``DNS:<name>`` or ``IP:<address>``."""

    kind: SanKind
    value: str

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.value}"


NODE_SAN = SubjectAltName(SanKind.DNS, "node")


@dataclass(frozen=True)
class IdentitySet:
    """Resolved identities to certify: one node and one or more clients."""

    node_sans: frozenset[SubjectAltName]
    client_usernames: frozenset[str]

    def sorted_sans(self) -> list[SubjectAltName]:
        return sorted(self.node_sans)

    def sorted_usernames(self) -> list[str]:
        return sorted(self.client_usernames)

    def san_values(self) -> list[str]:
        """Bare SAN values (no type prefix), as the cockroach CLI expects them."""
        return [san.value for san in self.sorted_sans()]

    def san_string(self) -> str:
        """Comma-joined SAN list for an OpenSSL ``subjectAltName=`` extension."""
        return ",".join(str(san) for san in self.sorted_sans())

    def __post_init__(self) -> None:
        if NODE_SAN not in self.node_sans:
            raise ValueError("node SAN set must contain DNS:node")
        if DEFAULT_USERNAME not in self.client_usernames:
            raise ValueError(f"client usernames must contain {DEFAULT_USERNAME}")


@dataclass(frozen=True)
class CommandInvocation:
    """Argument vector for one external process.

    ``env`` holds extra variables merged over the parent environment. It is
    excluded from the repr and the rendered command line since it may carry
    secrets.
    """

    argv: tuple[str, ...]
    env: Mapping[str, str] | None = field(default=None, repr=False, compare=False)

    @property
    def program(self) -> str:
        return self.argv[0]

    def render(self) -> str:
        return shlex.join(self.argv)


@dataclass(frozen=True)
class CommandResult:
    """Exit status and captured output of a finished process."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


@dataclass
class ArtifactSet:
    """Files produced for one identity."""

    identity: str
    key_path: Path
    cert_path: Path
    csr_path: Path | None = None
    pkcs8_path: Path | None = None
    pkcs12_path: Path | None = None

    def all_paths(self) -> list[Path]:
        candidates = [
            self.key_path,
            self.cert_path,
            self.csr_path,
            self.pkcs8_path,
            self.pkcs12_path,
        ]
        return [path for path in candidates if path is not None]


@dataclass
class RunResult:
    """Outcome of one provisioning run."""

    succeeded: bool
    elapsed_seconds: float
    artifacts: list[ArtifactSet] = field(default_factory=list)
    error: Exception | None = None

    @property
    def elapsed_millis(self) -> int:
        return int(self.elapsed_seconds * 1000)
