#!/usr/bin/env python3
"""
Example script showing how to use the dependency-licenses library.
"""

from dependency_licenses import CheckOptions, LicenseChecker, check_licenses
from dependency_licenses.classifier import classify
from dependency_licenses.models import FilterConfiguration


def example_basic_check():
    """Example: Resolve every installed package of a project."""
    print("="*60)
    print("Example 1: Basic Check")
    print("="*60)

    result = LicenseChecker(CheckOptions(start=".")).run()

    if result.error:
        print(f"\n{result.error}")
        return
    for key, record in result.packages.items():
        print(f"{key}: {record.licenses}")
    print(f"\nPipeline: {result.stats['pipeline']}")


def example_production_policy():
    """Example: Production dependencies only, failing on copyleft licenses."""
    print("\n" + "="*60)
    print("Example 2: Production Policy")
    print("="*60)

    options = CheckOptions(
        start=".",
        mode="production",
        strategy="streaming",
        filters=FilterConfiguration(
            exclude_private_packages=True,
            fail_on=("GPL", "AGPL"),
        ),
    )

    error, packages = check_licenses(options)

    if error:
        print(f"\nCheck failed: {error}")
    else:
        print(f"\n{len(packages)} packages passed")


def example_classify_text():
    """Example: Guess a license from README text."""
    print("\n" + "="*60)
    print("Example 3: Classify Text")
    print("="*60)

    for text in ("MIT", "Permission is hereby granted, free of charge, to any person", "see license in LICENSE.md"):
        print(f"{text[:40]!r} -> {classify(text)}")


if __name__ == "__main__":
    example_classify_text()
    example_basic_check()
    example_production_policy()
