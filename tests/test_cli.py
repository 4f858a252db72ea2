"""Tests for the command-line interface."""

import json

import pytest

from dependency_licenses.cli import main, parse_license_list, parse_package_list, parse_policy_list


def test_list_parsing(capsys):
    assert parse_license_list("MIT, ISC,Apache-2.0") == ("MIT", "ISC", "Apache-2.0")
    assert parse_license_list("Custom\\, with comma,MIT") == ("Custom, with comma", "MIT")
    assert parse_license_list(None) == ()
    assert parse_package_list("a;b@1.0.0; c") == ("a", "b@1.0.0", "c")

    assert parse_policy_list("GPL,MIT", "--failOn") == ("GPL,MIT",)
    assert "semicolons as delimeters" in capsys.readouterr().err


def test_json_output(project, tmp_path, capsys):
    out_file = tmp_path / "out" / "licenses.json"

    main(["--start", str(project), "--out", str(out_file)])

    data = json.loads(out_file.read_text(encoding="utf-8"))
    assert data["left-pad@1.3.0"]["licenses"] == "WTFPL"
    assert "Results saved to" in capsys.readouterr().out


def test_stdout_output(project, capsys):
    main(["--start", str(project), "--production", "--excludeLicenses", "MIT"])

    data = json.loads(capsys.readouterr().out)
    assert sorted(data) == ["@scope/util@0.2.0", "left-pad@1.3.0"]


def test_checksum_mismatch_exits_one(project, tmp_path, capsys):
    clarifications_file = tmp_path / "clarifications.json"
    clarifications_file.write_text(json.dumps({"jest-lite@2.1.0": {"checksum": "0" * 64}}), encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        main(["--start", str(project), "--clarificationsFile", str(clarifications_file)])

    assert excinfo.value.code == 1
    assert "checksum mismatch" in capsys.readouterr().err


def test_fail_on_exits_one(project, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--start", str(project), "--failOn", "WTFPL"])

    assert excinfo.value.code == 1
    assert "--failOn" in capsys.readouterr().err


def test_no_packages_found_exits_zero(project, capsys):
    main(["--start", str(project), "--includePackages", "nothing-here"])

    err = capsys.readouterr().err
    assert "An error has occurred:" in err
    assert "No packages found" in err


def test_fail_on_with_only_allow_is_rejected(project):
    with pytest.raises(SystemExit) as excinfo:
        main(["--start", str(project), "--failOn", "GPL", "--onlyAllow", "MIT"])

    assert excinfo.value.code == 2
