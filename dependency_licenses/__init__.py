"""
Dependency License Checker

Resolves the license of every package in an installed npm dependency tree and
applies license, package and policy filters to the result.
"""

__version__ = "0.1.0"

from .checker import CheckOptions, CheckResult, LicenseChecker, check_licenses
from .cli import main

__all__ = ["CheckOptions", "CheckResult", "LicenseChecker", "check_licenses", "main"]
