"""Tests for the .csproj accessor."""

from __future__ import annotations

from pathlib import Path

import pytest

from polybump.ecosystems.csharp import CSharpEcosystem, detect_indent, insert_version
from polybump.errors import ManifestParseError, ManifestWriteError
from polybump.versioning.semver import Version

CSPROJ = """\
<Project Sdk="Microsoft.NET.Sdk">
  <!-- Shared web host -->
  <PropertyGroup>
    <TargetFramework>net8.0</TargetFramework>
    <Version>1.2.0</Version>
    <IsPackable />
  </PropertyGroup>

  <ItemGroup>
    <PackageReference Include="Newtonsoft.Json" Version="13.0.1" />
    <PackageReference Include="Core.Lib" Version="[1.0, 2.0)" />
    <ProjectReference Include="..\\Utils\\Utils.csproj" />
  </ItemGroup>
</Project>
"""

LEGACY = """\
<?xml version="1.0" encoding="utf-8"?>
<Project ToolsVersion="15.0" xmlns="http://schemas.microsoft.com/developer/msbuild/2003">
  <PropertyGroup>
    <Version>0.9.0</Version>
  </PropertyGroup>
  <ItemGroup>
    <ProjectReference Include="../Core/Core.csproj" />
  </ItemGroup>
</Project>
"""


@pytest.fixture
def csharp() -> CSharpEcosystem:
    return CSharpEcosystem()


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class TestRead:
    """Tests for reading .csproj files."""

    def test_read(self, csharp: CSharpEcosystem, temp_dir: Path) -> None:
        data = csharp.read(write(temp_dir / "Web" / "Web.Host.csproj", CSPROJ))
        assert data.name == "Web.Host"
        assert data.version == "1.2.0"
        assert data.dependencies == {
            "Newtonsoft.Json": "13.0.1",
            "Core.Lib": "[1.0, 2.0)",
            "Utils": "",
        }
        assert data.is_workspace is False

    def test_namespaced_project(self, csharp: CSharpEcosystem, temp_dir: Path) -> None:
        data = csharp.read(write(temp_dir / "App" / "App.csproj", LEGACY))
        assert data.version == "0.9.0"
        assert data.dependencies == {"Core": ""}

    def test_solution_marks_workspace(self, csharp: CSharpEcosystem, temp_dir: Path) -> None:
        write(temp_dir / "App.sln", "Microsoft Visual Studio Solution File\n")
        data = csharp.read(write(temp_dir / "App.csproj", CSPROJ))
        assert data.is_workspace is True

    def test_missing_version(self, csharp: CSharpEcosystem, temp_dir: Path) -> None:
        text = '<Project Sdk="Microsoft.NET.Sdk"><PropertyGroup /></Project>'
        assert csharp.read(write(temp_dir / "A.csproj", text)).version is None

    def test_malformed(self, csharp: CSharpEcosystem, temp_dir: Path) -> None:
        with pytest.raises(ManifestParseError):
            csharp.read(write(temp_dir / "A.csproj", "<Project><PropertyGroup></Project>"))

    def test_not_a_project(self, csharp: CSharpEcosystem, temp_dir: Path) -> None:
        with pytest.raises(ManifestParseError, match="<Project>"):
            csharp.read(write(temp_dir / "A.csproj", "<Solution />"))


class TestWrite:
    """Tests for writing .csproj files."""

    def test_version(self, csharp: CSharpEcosystem, temp_dir: Path) -> None:
        path = write(temp_dir / "Web.csproj", CSPROJ)
        csharp.write_version(path, "1.3.0")
        assert path.read_text() == CSPROJ.replace("1.2.0", "1.3.0")

    def test_inserts_missing_version(self, csharp: CSharpEcosystem, temp_dir: Path) -> None:
        text = (
            '<Project Sdk="Microsoft.NET.Sdk">\n'
            "  <PropertyGroup>\n"
            "    <OutputType>Exe</OutputType>\n"
            "  </PropertyGroup>\n"
            "</Project>\n"
        )
        path = write(temp_dir / "Tool.csproj", text)
        csharp.write_version(path, "0.0.1")
        assert path.read_text() == (
            '<Project Sdk="Microsoft.NET.Sdk">\n'
            "  <PropertyGroup>\n"
            "    <OutputType>Exe</OutputType>\n"
            "    <Version>0.0.1</Version>\n"
            "  </PropertyGroup>\n"
            "</Project>\n"
        )
        assert csharp.read(path).version == "0.0.1"

    def test_no_property_group(self, csharp: CSharpEcosystem, temp_dir: Path) -> None:
        path = write(temp_dir / "A.csproj", '<Project Sdk="Microsoft.NET.Sdk" />\n')
        with pytest.raises(ManifestWriteError):
            csharp.write_version(path, "1.0.0")

    def test_dependency_constraint(self, csharp: CSharpEcosystem, temp_dir: Path) -> None:
        path = write(temp_dir / "Web.csproj", CSPROJ)
        csharp.write_dependency_constraint(path, "core.lib", "[2.0.0, 3.0.0)")
        assert path.read_text() == CSPROJ.replace('"[1.0, 2.0)"', '"[2.0.0, 3.0.0)"')

    def test_unknown_dependency(self, csharp: CSharpEcosystem, temp_dir: Path) -> None:
        path = write(temp_dir / "Web.csproj", CSPROJ)
        with pytest.raises(ManifestWriteError, match="Utils"):
            csharp.write_dependency_constraint(path, "Utils", "1.0.0")


class TestRanges:
    """Tests for NuGet range semantics."""

    @pytest.mark.parametrize(
        ("constraint", "version", "expected"),
        [
            ("1.0", Version(1, 0, 0), True),
            ("1.0", Version(5, 0, 0), True),
            ("1.0", Version(0, 9, 0), False),
            ("[1.0, 2.0)", Version(1, 9, 9), True),
            ("[1.0, 2.0)", Version(2, 0, 0), False),
            ("(,2.0]", Version(2, 0, 0), True),
            ("(1.0,)", Version(1, 0, 0), False),
            ("[1.2.0]", Version(1, 2, 0), True),
            ("[1.2.0]", Version(1, 2, 1), False),
            ("1.*", Version(1, 7, 0), True),
            ("1.*", Version(2, 0, 0), False),
            ("", Version(3, 0, 0), True),
        ],
    )
    def test_satisfied(
        self, csharp: CSharpEcosystem, constraint: str, version: Version, expected: bool
    ) -> None:
        assert csharp.constraint_satisfied(constraint, version) is expected

    def test_rewrite(self, csharp: CSharpEcosystem) -> None:
        assert csharp.rewrite_constraint("[1.0, 2.0)", Version(2, 0, 0)) == "[2.0.0, 3.0.0)"
        assert csharp.rewrite_constraint("[1.2.0]", Version(1, 3, 0)) == "[1.3.0]"
        assert csharp.rewrite_constraint("1.0", Version(2, 0, 0)) == "2.0.0"


def test_detect_indent() -> None:
    assert detect_indent("<A>\n    <B/>") == "    "
    assert detect_indent("<A>\n  <B/>") == "  "
    assert detect_indent("<A>\n\t<B/>") == "\t"
    assert detect_indent("<A/>") == "    "


def test_insert_version_inline_group() -> None:
    text = "<Project><PropertyGroup><OutputType>Exe</OutputType></PropertyGroup></Project>"
    assert insert_version(text, "1.0.0") == (
        "<Project><PropertyGroup><OutputType>Exe</OutputType>\n"
        "    <Version>1.0.0</Version>\n"
        "</PropertyGroup></Project>"
    )
