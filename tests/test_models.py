"""Tests for the data model."""

import sys

from dependency_licenses.models import InstalledPackageNode, LicenseField, PackageRecord, parse_author


def test_license_field_forms():
    assert LicenseField.from_raw("MIT").value == "MIT"
    assert LicenseField.from_raw({"type": "ISC", "url": "x"}).value == "ISC"
    assert LicenseField.from_raw([{"type": "MIT"}, {"name": "Apache-2.0"}, 42]).value == ["MIT", "Apache-2.0", "UNKNOWN"]
    assert LicenseField.from_raw(["BSD-3-Clause"]).value == "BSD-3-Clause"
    assert LicenseField.from_raw("") is None
    assert LicenseField.from_raw([]) is None
    assert LicenseField.from_raw(None) is None


def test_parse_author():
    assert parse_author("Jane <jane@example.com>") == {"name": "Jane", "email": "jane@example.com"}
    assert parse_author({"name": "Bob", "url": "https://bob.dev"}) == {"name": "Bob", "url": "https://bob.dev"}
    assert parse_author("") is None


def test_node_key_and_manifest():
    node = InstalledPackageNode.from_manifest({"name": "a", "version": "1.0.0", "licenses": "MIT", "x": 1}, "/a")

    assert node.key == "a@1.0.0"
    assert node.license.identifiers == ("MIT",)
    assert node.manifest["x"] == 1
    assert InstalledPackageNode(name="a", version=None).key is None


def test_node_from_tree_skips_shorthand_children():
    node = InstalledPackageNode.from_tree(
        {"name": "root", "version": "1.0.0", "dependencies": {"a": {"version": "2.0.0"}, "b": "^1.0.0"}}
    )

    assert node.root
    assert list(node.dependencies) == ["a"]
    assert node.dependencies["a"].key == "a@2.0.0"
    assert not node.dependencies["a"].root


def test_record_dict_round_trip_keeps_extra_fields():
    record = PackageRecord(licenses=["MIT", "ISC"], license_file="LICENSE", extra={"description": "d"})

    data = record.to_dict()

    assert data == {"licenses": ["MIT", "ISC"], "licenseFile": "LICENSE", "description": "d"}
    assert PackageRecord.from_dict({"name": "a", "version": "1", **data}) == record


def test_node_from_deeply_nested_tree():
    depth = sys.getrecursionlimit() + 100
    tree = {"name": "leaf", "version": "1.0.0"}
    for level in range(depth):
        tree = {"name": f"pkg-{level}", "version": "1.0.0", "dependencies": {"child": tree}}

    node = InstalledPackageNode.from_tree(tree)

    levels = 0
    while node.dependencies:
        node = node.dependencies["child"]
        levels += 1
    assert levels == depth
    assert node.key == "leaf@1.0.0"
