"""Tests for the depends command line."""

import json

import pytest

from args import parse_args
from common.errors import MissingRestoreError, PackageNotFoundError, RegistryError, UnsatisfiedDependencyError
from conftest import make_nupkg
from constants import Constants, ExitCodes
from depends import exit_code_for, main, output_format


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """No user config, and logging settings restored after each test."""
    monkeypatch.delenv(Constants.ENV_CONFIG, raising=False)
    monkeypatch.setenv(Constants.ENV_LOG_LEVEL, "WARNING")
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


@pytest.fixture
def feed(tmp_path):
    folder = tmp_path / "feed"
    folder.mkdir()
    (folder / "a.1.0.0.nupkg").write_bytes(make_nupkg(
        "A", "1.0.0", files=["lib/net45/A.dll"], flat_dependencies=[("B", "1.0.0")],
    ))
    (folder / "b.1.0.0.nupkg").write_bytes(make_nupkg("B", "1.0.0", files=["lib/netstandard2.0/B.dll"]))
    return str(folder)


def run(argv):
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


class TestParseArgs:
    """Test argument validation."""

    def test_package_requires_version(self):
        """Test --package without --version is rejected."""
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["--package", "A"])
        assert exc_info.value.code == 2

    def test_package_and_project_are_exclusive(self):
        """Test only one root can be selected."""
        with pytest.raises(SystemExit):
            parse_args(["--package", "A", "--version", "1.0.0", "--project", "App.csproj"])

    def test_defaults(self):
        """Test default option values."""
        args = parse_args(["-p", "A", "-v", "1.0.0"])
        assert args.SOURCES == []
        assert args.FRAMEWORK is None
        assert args.LOG_LEVEL == "INFO"
        assert not args.QUIET

    def test_output_format_inference(self):
        """Test the format follows --format, then the output extension."""
        assert output_format(parse_args(["-p", "A", "-v", "1", "-o", "g.json"])) == "json"
        assert output_format(parse_args(["-p", "A", "-v", "1", "-o", "g.txt"])) == "text"
        assert output_format(parse_args(["-p", "A", "-v", "1", "--format", "JSON"])) == "json"


class TestMain:
    """Test end-to-end runs against a local folder feed."""

    def test_text_tree(self, feed, capsys):
        """Test the default text output."""
        assert run(["-p", "A", "-v", "1.0.0", "-f", "net48", "-s", feed]) == ExitCodes.SUCCESS.value

        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == "A 1.0.0"
        assert "  A.dll" in lines
        assert "  B 1.0.0 [1.0.0,)" in lines
        assert "    B.dll" in lines

    def test_json_file(self, feed, tmp_path):
        """Test writing JSON to --output."""
        output = tmp_path / "graph.json"

        assert run(["-p", "A", "-v", "1.0.0", "-s", feed, "-o", str(output)]) == ExitCodes.SUCCESS.value

        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["nodes"][data["root"]]["id"] == "A"
        assert {"kind": "package", "id": "B", "version": "1.0.0"} in data["nodes"]

    def test_quiet(self, feed, capsys):
        """Test --quiet suppresses console output."""
        assert run(["-p", "A", "-v", "1.0.0", "-s", feed, "-q"]) == ExitCodes.SUCCESS.value
        assert capsys.readouterr().out == ""

    def test_missing_package(self, feed):
        """Test an unknown package exits with a resolution error."""
        assert run(["-p", "Missing", "-v", "1.0.0", "-s", feed]) == ExitCodes.RESOLUTION_ERROR.value

    def test_bad_version(self, feed):
        """Test a malformed version exits with a file error."""
        assert run(["-p", "A", "-v", "not.a.version", "-s", feed]) == ExitCodes.FILE_ERROR.value

    def test_unrestored_project(self, tmp_path):
        """Test a project without project.assets.json exits with a file error."""
        project = tmp_path / "App.csproj"
        project.write_text(
            '<Project Sdk="Microsoft.NET.Sdk"><PropertyGroup>'
            '<TargetFramework>net8.0</TargetFramework></PropertyGroup></Project>',
            encoding="utf-8",
        )
        assert run(["--project", str(project)]) == ExitCodes.FILE_ERROR.value

    def test_bad_config(self, feed, tmp_path):
        """Test an invalid config file exits with a file error."""
        config = tmp_path / "bad.yml"
        config.write_text("- not a mapping\n", encoding="utf-8")
        assert run(["-p", "A", "-v", "1.0.0", "-s", feed, "-c", str(config)]) == ExitCodes.FILE_ERROR.value


class TestExitCodes:
    """Test error to exit code mapping."""

    @pytest.mark.parametrize("error,code", [
        (RegistryError("down"), ExitCodes.CONNECTION_ERROR),
        (PackageNotFoundError("A@1.0.0"), ExitCodes.RESOLUTION_ERROR),
        (UnsatisfiedDependencyError("B", "[1.0.0]"), ExitCodes.RESOLUTION_ERROR),
        (MissingRestoreError("obj/project.assets.json"), ExitCodes.FILE_ERROR),
    ])
    def test_mapping(self, error, code):
        """Test each error class maps to its exit code."""
        assert exit_code_for(error) is code
