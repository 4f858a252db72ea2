"""Tests for license file discovery and text helpers."""

from dependency_licenses.license_files import (
    clip_license_text,
    extract_copyright,
    find_license_files,
    find_notice_files,
    normalize_repository_url,
)


def test_license_file_precedence():
    listing = ["README.md", "index.js", "COPYING", "license.txt", "LICENSE-MIT", "package.json"]

    assert find_license_files(listing) == ["license.txt", "LICENSE-MIT", "COPYING", "README.md"]


def test_one_file_per_pattern():
    assert find_license_files(["LICENSE", "LICENSE.md"]) == ["LICENSE"]
    assert find_license_files(["index.js"]) == []


def test_notice_files():
    assert find_notice_files(["NOTICE", "notice.txt", "LICENSE"]) == ["NOTICE", "notice.txt"]


def test_copyright_first_block():
    text = "MIT License\n\nCopyright (c) 2020 Jane\nand contributors\n\nPermission is hereby granted"

    assert extract_copyright(text) == "Copyright (c) 2020 Jane. and contributors"


def test_copyright_multiple_blocks_marked():
    text = "(c) header\r\n\r\nCopyright 2019 A\n\ncopyright 2020 B\n\nbody"

    assert extract_copyright(text) == "Copyright 2019 A*"


def test_copyright_skips_boilerplate_and_duplicates():
    text = (
        "Copyright notice must be retained\n\n"
        "Copyright and related rights waived\n\n"
        "Copyright 2021 C\n\n"
        "Copyright 2021 C"
    )

    assert extract_copyright(text) == "Copyright 2021 C"
    assert extract_copyright("no notice here") is None


def test_clip_license_text():
    text = "preamble START body END trailer"

    assert clip_license_text(text, "START", "END") == "START body "
    assert clip_license_text(text, "missing", "END") == "preamble START body "
    assert clip_license_text(text, "START", "missing") == "START body END trailer"
    assert clip_license_text(text) == text


def test_repository_urls():
    assert normalize_repository_url("git+https://github.com/a/b.git") == "https://github.com/a/b"
    assert normalize_repository_url({"type": "git", "url": "git://github.com/a/b.git"}) == "https://github.com/a/b"
    assert normalize_repository_url("git@github.com:a/b.git") == "https://github.com/a/b"
    assert normalize_repository_url("git+ssh://git@example.com/a/b") == "git://example.com/a/b"
    assert normalize_repository_url(None) is None
