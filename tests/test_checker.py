"""End-to-end tests for the license checker."""

import hashlib
import json

import pytest

from dependency_licenses.checker import CheckOptions, LicenseChecker, check_licenses, load_custom_format
from dependency_licenses.errors import (
    ChecksumMismatchError,
    FailOnLicenseError,
    NoPackagesFoundError,
    UnusedClarificationsError,
)
from dependency_licenses.models import FilterConfiguration


def test_scanner_run(project, cache):
    result = LicenseChecker(CheckOptions(start=str(project)), cache=cache).run()

    assert result.error is None
    assert list(result.packages) == sorted(result.packages)
    licenses = {key: record.licenses for key, record in result.packages.items()}
    assert licenses == {
        "@scope/util@0.2.0": "Apache-2.0",
        "app@1.0.0": "MIT",
        "jest-lite@2.1.0": "MIT*",
        "left-pad@1.3.0": "WTFPL",
    }
    assert result.stats["pipeline"]["processed"] == 4


def test_streaming_matches_eager(project, cache):
    eager = LicenseChecker(CheckOptions(start=str(project)), cache=cache).run()
    streaming = LicenseChecker(CheckOptions(start=str(project), strategy="streaming"), cache=cache).run()

    assert streaming.to_dict() == eager.to_dict()
    assert streaming.stats["collection"]["total_packages"] == 4


def test_streaming_matches_eager_with_custom_format(project, cache):
    custom_format = {"name": "", "version": "", "description": ""}
    eager = LicenseChecker(CheckOptions(start=str(project), custom_format=custom_format), cache=cache).run()
    streaming = LicenseChecker(
        CheckOptions(start=str(project), custom_format=custom_format, strategy="streaming"), cache=cache
    ).run()

    assert streaming.to_dict() == eager.to_dict()
    left_pad = streaming.to_dict()["left-pad@1.3.0"]
    assert left_pad["name"] == "left-pad"
    assert left_pad["version"] == "1.3.0"
    assert left_pad["description"] == ""


def test_production_mode(project, cache):
    result = LicenseChecker(CheckOptions(start=str(project), mode="production"), cache=cache).run()

    assert "jest-lite@2.1.0" not in result.packages
    assert "left-pad@1.3.0" in result.packages


def test_tree_file_source(tmp_path, cache):
    tree = {
        "name": "app",
        "version": "1.0.0",
        "license": "MIT",
        "dependencies": {
            "lib": {"version": "2.0.0", "license": "ISC", "path": "node_modules/lib"},
            "tool": {"name": "tool", "version": "1.0.0", "license": "MIT", "extraneous": True},
            "shorthand": "^1.0.0",
        },
    }
    tree_file = tmp_path / "tree.json"
    tree_file.write_text(json.dumps(tree), encoding="utf-8")
    options = CheckOptions(start=str(tmp_path), source="tree", tree_file=str(tree_file), mode="production")

    result = LicenseChecker(options, cache=cache).run()

    assert sorted(result.packages) == ["app@1.0.0", "lib@2.0.0"]
    assert result.packages["lib@2.0.0"].path == str(tmp_path / "node_modules" / "lib")


def test_filters_and_relative_paths(project, cache):
    options = CheckOptions(
        start=str(project),
        filters=FilterConfiguration(exclude_licenses=("MIT",), relative_module_path=True),
    )

    result = LicenseChecker(options, cache=cache).run()

    assert sorted(result.packages) == ["@scope/util@0.2.0", "left-pad@1.3.0"]
    assert result.packages["left-pad@1.3.0"].path == "node_modules/left-pad"


def test_no_packages_found_is_reported_not_raised(project, cache):
    options = CheckOptions(start=str(project), filters=FilterConfiguration(include_packages=("nothing-here",)))

    result = LicenseChecker(options, cache=cache).run()

    assert result.packages == {}
    assert isinstance(result.error, NoPackagesFoundError)


def test_fail_on_propagates(project, cache):
    options = CheckOptions(start=str(project), filters=FilterConfiguration(fail_on=("WTFPL",)))

    with pytest.raises(FailOnLicenseError):
        LicenseChecker(options, cache=cache).run()

    error, packages = check_licenses(options, cache=cache)
    assert isinstance(error, FailOnLicenseError)
    assert packages == {}


def test_clarifications(project, tmp_path, cache):
    license_text = (project / "node_modules" / "jest-lite" / "LICENSE").read_text(encoding="utf-8")
    clarifications = {
        "jest-lite@^2.0.0": {"licenses": "MIT", "checksum": hashlib.sha256(license_text.encode()).hexdigest()},
        "left-pad@^9.0.0": {"licenses": "MIT"},
    }
    clarifications_file = tmp_path / "clarifications.json"
    clarifications_file.write_text(json.dumps(clarifications), encoding="utf-8")

    result = LicenseChecker(
        CheckOptions(start=str(project), clarifications_file=str(clarifications_file)), cache=cache
    ).run()
    assert result.packages["jest-lite@2.1.0"].licenses == "MIT"

    strict = CheckOptions(
        start=str(project), clarifications_file=str(clarifications_file), clarifications_match_all=True
    )
    with pytest.raises(UnusedClarificationsError) as excinfo:
        LicenseChecker(strict, cache=cache).run()
    assert excinfo.value.unused == ["left-pad@^9.0.0"]


def test_checksum_mismatch_stops_the_run(project, tmp_path, cache):
    clarifications_file = tmp_path / "clarifications.json"
    clarifications_file.write_text(json.dumps({"jest-lite@2.1.0": {"checksum": "f" * 64}}), encoding="utf-8")

    error, _ = check_licenses(
        CheckOptions(start=str(project), clarifications_file=str(clarifications_file)), cache=cache
    )

    assert isinstance(error, ChecksumMismatchError)


def test_options_validation():
    with pytest.raises(ValueError):
        CheckOptions(strategy="lazy")
    with pytest.raises(ValueError):
        CheckOptions(source="tree")
    with pytest.raises(ValueError):
        CheckOptions(clarifications_match_all=True)


def test_load_custom_format(tmp_path):
    custom = tmp_path / "format.json"
    custom.write_text(json.dumps({"licenseText": False, "description": ""}), encoding="utf-8")

    assert load_custom_format(str(custom)) == {"licenseText": False, "description": ""}
    assert load_custom_format({"a": 1}) == {"a": 1}
    assert load_custom_format(None) is None
