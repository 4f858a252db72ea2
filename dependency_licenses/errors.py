"""
Error types raised by the license checker.
"""

from __future__ import annotations

from typing import Iterable


class LicenseCheckError(Exception):
    """Base class for failures that should stop a license check."""

    exit_code = 1


class ClarificationError(LicenseCheckError):
    pass


class ChecksumMismatchError(ClarificationError):
    def __init__(self, package: str, license_file: str) -> None:
        self.package = package
        self.license_file = license_file
        super().__init__(f"Clarification checksum mismatch for {package} :(\nFile checked: {license_file}")


class MissingChecksumError(ClarificationError):
    def __init__(self, package: str) -> None:
        self.package = package
        super().__init__(f"All clarifications must come with a checksum (no license file verified for {package})")


class UnusedClarificationsError(ClarificationError):
    def __init__(self, unused: Iterable[str]) -> None:
        self.unused = list(unused)
        super().__init__(
            f"Some clarifications ({', '.join(self.unused)}) were unused and "
            "--clarificationsMatchAll was specified. Exiting."
        )


class PolicyError(LicenseCheckError):
    def __init__(self, message: str, package: str, license: str) -> None:
        self.package = package
        self.license = license
        super().__init__(message)


class FailOnLicenseError(PolicyError):
    def __init__(self, package: str, license: str) -> None:
        super().__init__(
            f'Found license defined by the --failOn flag: "{license}" ({package}). Exiting.',
            package,
            license,
        )


class OnlyAllowLicenseError(PolicyError):
    def __init__(self, package: str, license: str) -> None:
        super().__init__(
            f'Package "{package}" is licensed under "{license}" which is not permitted '
            "by the --onlyAllow flag. Exiting.",
            package,
            license,
        )


class NoPackagesFoundError(LicenseCheckError):
    def __init__(self, start: str = "") -> None:
        self.start = start
        super().__init__("No packages found in this path...")


class PackageScanError(LicenseCheckError):
    """Raised when the root manifest of a scan cannot be read."""
