import json
from pathlib import Path

import pytest

from dependency_licenses.cache import LicenseFileCache


def write_package(directory: Path, manifest: dict, files: dict = None) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "package.json").write_text(json.dumps(manifest), encoding="utf-8")
    for name, content in (files or {}).items():
        (directory / name).write_text(content, encoding="utf-8")
    return directory


@pytest.fixture
def make_package():
    return write_package


@pytest.fixture
def cache():
    return LicenseFileCache()


@pytest.fixture
def project(tmp_path):
    """A small installed project: one prod dep, one dev dep, one transitive dep."""
    root = write_package(
        tmp_path / "app",
        {
            "name": "app",
            "version": "1.0.0",
            "license": "MIT",
            "dependencies": {"left-pad": "^1.0.0"},
            "devDependencies": {"jest-lite": "^2.0.0"},
        },
    )
    modules = root / "node_modules"
    write_package(
        modules / "left-pad",
        {"name": "left-pad", "version": "1.3.0", "license": "WTFPL"},
    )
    write_package(
        modules / "jest-lite",
        {"name": "jest-lite", "version": "2.1.0"},
        {"LICENSE": "Permission is hereby granted, free of charge, to any person obtaining a copy\n"},
    )
    write_package(
        modules / "@scope" / "util",
        {"name": "@scope/util", "version": "0.2.0", "license": "Apache-2.0"},
    )
    return root
