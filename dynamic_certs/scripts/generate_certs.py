#!/usr/bin/env python3
"""Generate the CA, node and client certificates for a CockroachDB container."""

import argparse
import dataclasses
import os
import sys
from pathlib import Path

from dynamic_certs.lib.config import ProvisioningConfig
from dynamic_certs.lib.errors import ConfigurationError
from dynamic_certs.lib.logging_config import LOGGER, configure_logging
from dynamic_certs.lib.orchestrator import Orchestrator


def main(argv: list[str] | None = None) -> int:
    """Provision certificates from environment configuration.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(
        description="Generate CockroachDB certificates with openssl or the cockroach CLI"
    )
    parser.add_argument(
        "--certs-dir",
        type=Path,
        help="Directory shared with the cluster (overrides CERTS_DIR)",
    )
    parser.add_argument(
        "--internal-dir",
        type=Path,
        help="Directory for CA key and CSRs (overrides INTERNAL_DIR)",
    )
    parser.add_argument(
        "--use-openssl",
        action="store_true",
        help="Use the openssl backend regardless of USE_OPENSSL",
    )
    args = parser.parse_args(argv)

    try:
        config = ProvisioningConfig.from_env(os.environ)
    except ConfigurationError as e:
        LOGGER.error("Invalid configuration: %s", e)
        return 1

    overrides = {}
    if args.certs_dir is not None:
        overrides["certs_dir"] = args.certs_dir
    if args.internal_dir is not None:
        overrides["internal_dir"] = args.internal_dir
    if args.use_openssl:
        overrides["use_openssl"] = True
    if overrides:
        config = dataclasses.replace(config, **overrides)

    configure_logging(config.log_level)
    LOGGER.debug("Resolved configuration: %r", config)

    result = Orchestrator(config).run()
    return 0 if result.succeeded else 1


if __name__ == "__main__":
    sys.exit(main())
