"""Exception hierarchy for certificate provisioning."""


class ProvisioningError(Exception):
    """Base class for every failure that aborts a provisioning run."""


class ConfigurationError(ProvisioningError):
    """Required input is missing or cannot be parsed."""


class CommandFailureError(ProvisioningError):
    """An external command exited with a non-zero status."""

    def __init__(
        self, exit_code: int, command: str, stderr: str = "", stdout: str = ""
    ) -> None:
        self.exit_code = exit_code
        self.command = command
        self.stderr = stderr
        self.stdout = stdout
        super().__init__(f"command exited abnormally with code [{exit_code}]: {command}")


class RunnerError(ProvisioningError):
    """An external command could not be launched or waited on."""

    def __init__(self, command: str, reason: str) -> None:
        self.command = command
        self.reason = reason
        super().__init__(f"failed to run command: {command}: {reason}")


class BundleVerificationError(ProvisioningError):
    """The produced certificate bundle is inconsistent."""
