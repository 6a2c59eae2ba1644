"""Derivation of node SANs and client usernames from raw configuration strings."""

import ipaddress

from .config import DEFAULT_USERNAME
from .errors import ConfigurationError
from .models import NODE_SAN, IdentitySet, SanKind, SubjectAltName


def classify_token(token: str) -> SubjectAltName:
    """Tag a SAN token as IP when it parses as an IP literal, else as DNS."""
    try:
        address = ipaddress.ip_address(token)
    except ValueError:
        return SubjectAltName(SanKind.DNS, token)
    return SubjectAltName(SanKind.IP, str(address))


def parse_node_names(raw: str | None) -> list[str]:
    """Split a whitespace-separated name list, dropping blank tokens."""
    if raw is None:
        return []
    return [token.strip() for token in raw.split() if token.strip()]


def build_node_sans(
    raw: str | None, require_node_names: bool = False
) -> frozenset[SubjectAltName]:
    """Build the node SAN set; ``DNS:node`` is always included.

    Raises:
        ConfigurationError: If names are required but absent, or a token
            would corrupt the comma-separated SAN extension value
    """
    tokens = parse_node_names(raw)
    if not tokens and require_node_names:
        raise ConfigurationError("NODE_ALTERNATIVE_NAMES is required but was not provided")

    sans = {NODE_SAN}
    for token in tokens:
        if "," in token:
            raise ConfigurationError(f"invalid node alternative name [{token}]")
        sans.add(classify_token(token))
    return frozenset(sans)


def build_client_usernames(username: str | None) -> frozenset[str]:
    """Return the configured username plus the default superuser.

    Usernames are lowercased, matching how the database normalizes them.
    The lowercased form is also the client certificate CN, deliberately,
    so the CN always equals the ``client.<username>.*`` file name.
    """
    resolved = ((username or "").strip() or DEFAULT_USERNAME).lower()
    if "/" in resolved or "\\" in resolved or resolved in {".", ".."}:
        raise ConfigurationError(f"invalid client username [{resolved}]")
    return frozenset({resolved, DEFAULT_USERNAME})


def build_identity_set(
    node_names: str | None,
    client_username: str | None,
    require_node_names: bool = False,
) -> IdentitySet:
    """Resolve every identity a provisioning run certifies.

    Args:
        node_names: Raw whitespace-separated SAN tokens, None when unset
        client_username: Primary client username, blank means the default
        require_node_names: Treat absent node names as a configuration error

    Returns:
        IdentitySet with deduplicated SANs and usernames
    """
    return IdentitySet(
        node_sans=build_node_sans(node_names, require_node_names),
        client_usernames=build_client_usernames(client_username),
    )
