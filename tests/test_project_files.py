"""Tests for project file and lock file reading."""

import json
import os

import pytest

from common.errors import LockFileError, ProjectLoadError, UnsupportedProjectError
from project.lockfile import read_lock_file
from project.msbuild import load_project
from versioning.frameworks import parse_framework


def _write(path, text):
    path.write_text(text, encoding="utf-8")
    return str(path)


class TestLoadProject:
    """Test SDK-style project loading."""

    def test_reads_references_and_framework(self, tmp_path):
        """Test the common project shape."""
        project = _write(tmp_path / "Lib.csproj", """<Project Sdk="Microsoft.NET.Sdk">
  <PropertyGroup>
    <TargetFramework>netstandard2.0</TargetFramework>
  </PropertyGroup>
  <ItemGroup>
    <PackageReference Include="Newtonsoft.Json" Version="13.0.1" />
    <PackageReference Include="Serilog">
      <Version>3.1.1</Version>
    </PackageReference>
    <Reference Include="System.Xml, Version=4.0.0.0, Culture=neutral" />
  </ItemGroup>
</Project>
""")

        info = load_project(project)

        assert info.target_framework == parse_framework("netstandard2.0")
        assert info.target_framework_moniker == "netstandard2.0"
        assert [(r.id, r.version) for r in info.package_references] == [
            ("Newtonsoft.Json", "13.0.1"),
            ("Serilog", "3.1.1"),
        ]
        assert info.file_references == ("System.Xml",)
        assert info.assets_path == os.path.join(str(tmp_path), "obj", "project.assets.json")

    def test_sdk_element_and_import(self, tmp_path):
        """Test the alternative SDK declarations."""
        for body in ('<Sdk Name="Microsoft.NET.Sdk" />', '<Import Project="Sdk.props" Sdk="Microsoft.NET.Sdk" />'):
            project = _write(tmp_path / "P.csproj", f"""<Project>
  {body}
  <PropertyGroup><TargetFramework>net8.0</TargetFramework></PropertyGroup>
</Project>
""")
            assert load_project(project).target_framework_moniker == "net8.0"

    def test_custom_intermediate_path(self, tmp_path):
        """Test BaseIntermediateOutputPath moves the lock file."""
        project = _write(tmp_path / "P.csproj", """<Project Sdk="Microsoft.NET.Sdk">
  <PropertyGroup>
    <TargetFramework>net8.0</TargetFramework>
    <BaseIntermediateOutputPath>build\\obj\\</BaseIntermediateOutputPath>
  </PropertyGroup>
</Project>
""")

        info = load_project(project)

        assert info.assets_path == os.path.join(str(tmp_path), "build", "obj", "project.assets.json")

    def test_conditional_properties_ignored(self, tmp_path):
        """Test conditional property groups are not evaluated."""
        project = _write(tmp_path / "P.csproj", """<Project Sdk="Microsoft.NET.Sdk">
  <PropertyGroup Condition="'$(Configuration)' == 'Debug'">
    <TargetFramework>net48</TargetFramework>
  </PropertyGroup>
  <PropertyGroup>
    <TargetFramework>net8.0</TargetFramework>
  </PropertyGroup>
</Project>
""")

        assert load_project(project).target_framework_moniker == "net8.0"

    def test_missing_file(self, tmp_path):
        """Test a missing project raises ProjectLoadError."""
        with pytest.raises(ProjectLoadError):
            load_project(str(tmp_path / "missing.csproj"))

    def test_invalid_xml(self, tmp_path):
        """Test broken XML raises ProjectLoadError."""
        with pytest.raises(ProjectLoadError):
            load_project(_write(tmp_path / "P.csproj", "<Project Sdk="))

    def test_no_target_framework(self, tmp_path):
        """Test a project without a target framework raises ProjectLoadError."""
        project = _write(tmp_path / "P.csproj", '<Project Sdk="Microsoft.NET.Sdk"></Project>')
        with pytest.raises(ProjectLoadError):
            load_project(project)

    def test_legacy_project(self, tmp_path):
        """Test non-SDK projects raise UnsupportedProjectError."""
        project = _write(tmp_path / "P.csproj", "<Project ToolsVersion=\"15.0\"></Project>")
        with pytest.raises(UnsupportedProjectError):
            load_project(project)


class TestReadLockFile:
    """Test project.assets.json parsing."""

    def test_reads_targets_and_declarations(self, tmp_path):
        """Test libraries and project dependencies are read."""
        path = tmp_path / "project.assets.json"
        path.write_text(json.dumps({
            "version": 3,
            "targets": {
                ".NETFramework,Version=v4.8": {
                    "A/1.0.0": {
                        "type": "package",
                        "dependencies": {"B": "[1.0.0, 2.0.0)"},
                        "frameworkAssemblies": ["System.Net.Http"],
                        "runtime": {"lib/net45/A.dll": {}},
                    },
                    "B/1.5.0": {"type": "package"},
                },
            },
            "project": {
                "frameworks": {"net48": {"dependencies": {"A": {"version": "[1.0.0, )"}}}},
            },
        }), encoding="utf-8-sig")

        lock_file = read_lock_file(str(path))
        target = lock_file.get_target(parse_framework("net48"))

        assert lock_file.version == 3
        a, b = target.packages()
        assert (a.id, a.version) == ("A", "1.0.0")
        assert a.dependencies == (("B", "[1.0.0, 2.0.0)"),)
        assert a.framework_assemblies == ("System.Net.Http",)
        assert a.runtime_assemblies == ("lib/net45/A.dll",)
        assert b.dependencies == ()
        assert lock_file.declared_range(parse_framework("net48"), "a") == "[1.0.0, )"
        assert lock_file.declared_range(parse_framework("net48"), "missing") is None

    def test_invalid_json(self, tmp_path):
        """Test unreadable JSON raises LockFileError."""
        path = tmp_path / "project.assets.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(LockFileError):
            read_lock_file(str(path))

    def test_missing_target(self, tmp_path):
        """Test asking for an absent framework raises LockFileError."""
        path = tmp_path / "project.assets.json"
        path.write_text(json.dumps({"version": 3, "targets": {"net8.0": {}}}), encoding="utf-8")
        with pytest.raises(LockFileError):
            read_lock_file(str(path)).get_target(parse_framework("net48"))

    def test_malformed_library_key(self, tmp_path):
        """Test library keys must be id/version."""
        path = tmp_path / "project.assets.json"
        path.write_text(json.dumps({"version": 3, "targets": {"net8.0": {"NoVersion": {}}}}), encoding="utf-8")
        with pytest.raises(LockFileError):
            read_lock_file(str(path))

    @pytest.mark.parametrize("data", [
        {"version": 3, "targets": {"net8.0": {"A/1.0.0": "package"}}},
        {"version": 3, "targets": {"net8.0": {"A/1.0.0": ["lib/net8.0/A.dll"]}}},
        {"version": "three", "targets": {}},
        {"version": [3], "targets": {}},
        {"version": 3, "targets": ["net8.0"]},
        {"version": 3, "targets": {}, "project": "App"},
        {"version": 3, "targets": {}, "project": {"frameworks": {"net8.0": "deps"}}},
        {"version": 3, "targets": {}, "project": {"frameworks": {"net8.0": {"dependencies": ["A"]}}}},
    ])
    def test_malformed_structure(self, tmp_path, data):
        """Test wrongly typed sections raise LockFileError."""
        path = tmp_path / "project.assets.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        with pytest.raises(LockFileError):
            read_lock_file(str(path))
