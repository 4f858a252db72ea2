"""Tests for the parallel node_modules scanner."""

import asyncio
import threading

import pytest

import dependency_licenses.scanner as scanner_module
from dependency_licenses.errors import PackageScanError
from dependency_licenses.scanner import ParallelDirectoryScanner, find_package_dirs


def test_find_package_dirs(project, make_package):
    make_package(project / "node_modules" / "left-pad" / "node_modules" / "deep", {"name": "deep", "version": "0.0.1"})
    (project / "node_modules" / ".bin").mkdir()
    (project / "node_modules" / "stray-file").write_text("", encoding="utf-8")

    names = sorted(path.split("node_modules")[-1].strip("/\\") for path in find_package_dirs(str(project)))

    assert names == ["@scope/util", "deep", "jest-lite", "left-pad"]


def test_scan_classifies_extraneous(project, make_package):
    make_package(project / "node_modules" / "transitive", {"name": "transitive", "version": "1.0.0"})

    result = ParallelDirectoryScanner(concurrency=2).scan_sync(str(project))

    by_name = {node.name: node for node in result.packages}
    assert sorted(by_name) == ["@scope/util", "jest-lite", "left-pad", "transitive"]
    assert not by_name["left-pad"].extraneous
    assert not by_name["jest-lite"].extraneous
    assert by_name["transitive"].extraneous
    assert result.root.root
    assert set(result.root.dependencies) == set(by_name)
    assert set(result.timing) == {"walk", "read", "total"}


def test_scan_modes(project):
    production = ParallelDirectoryScanner(mode="production").scan_sync(str(project))
    development = ParallelDirectoryScanner(mode="development").scan_sync(str(project))

    assert "jest-lite" not in {node.name for node in production.packages}
    assert "left-pad" in {node.name for node in production.packages}
    assert "left-pad" not in {node.name for node in development.packages}
    assert "jest-lite" in {node.name for node in development.packages}


def test_duplicates_keep_first_found(project, make_package):
    make_package(
        project / "node_modules" / "jest-lite" / "node_modules" / "left-pad",
        {"name": "left-pad", "version": "1.3.0", "license": "MIT"},
    )
    make_package(
        project / "node_modules" / "jest-lite" / "node_modules" / "@scope" / "util",
        {"name": "@scope/util", "version": "0.1.0"},
    )

    result = asyncio.run(ParallelDirectoryScanner().scan(str(project)))

    left_pads = [node for node in result.packages if node.name == "left-pad"]
    assert len(left_pads) == 1
    assert left_pads[0].license.identifiers == ("WTFPL",)
    assert "@scope/util@0.1.0" in result.root.dependencies
    assert "@scope/util" in result.root.dependencies


def test_unreadable_manifest_skipped(project):
    broken = project / "node_modules" / "broken"
    broken.mkdir()
    (broken / "package.json").write_text("{not json", encoding="utf-8")

    result = ParallelDirectoryScanner().scan_sync(str(project))

    assert "broken" not in {node.name for node in result.packages}


def test_missing_root_manifest(tmp_path):
    with pytest.raises(PackageScanError) as excinfo:
        ParallelDirectoryScanner().scan_sync(str(tmp_path))

    assert "Cannot read root package.json" in str(excinfo.value)


def test_invalid_concurrency():
    with pytest.raises(ValueError):
        ParallelDirectoryScanner(concurrency=0)


def test_concurrency_sets_reads_in_flight(monkeypatch):
    concurrency = 48
    barrier = threading.Barrier(concurrency, timeout=10)

    def read_manifest(directory):
        # Only passes once every worker holds a read at the same time.
        barrier.wait()
        return {"name": directory, "version": "1.0.0"}

    monkeypatch.setattr(scanner_module, "_read_manifest", read_manifest)
    directories = [f"pkg-{index}" for index in range(concurrency)]

    results = asyncio.run(ParallelDirectoryScanner(concurrency=concurrency)._read_all(directories))

    assert [result["name"] for result in results] == directories
