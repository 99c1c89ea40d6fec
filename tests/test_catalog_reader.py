"""Tests for the version catalog reader."""

import textwrap

import pytest

from vcupdate.catalog.models import EntryKind, ModuleCoordinate
from vcupdate.catalog.reader import catalog_name_for, parse_catalog_file, parse_directory
from vcupdate.errors import CatalogParseError


def write_catalog(directory, name, body):
    """Helper to write a dedented catalog file and return its path."""
    path = directory / name
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path


FULL_CATALOG = """\
    # Shared versions
    [versions]
    jackson = "2.15.0"
    micronaut = { strictly = "4.1.0" }

    [libraries]
    guava = "com.google.guava:guava:30.0-jre"
    jackson-core = { module = "com.fasterxml.jackson.core:jackson-core", version.ref = "jackson" }
    jackson-core-alias = { group = "com.fasterxml.jackson.core", name = "jackson-core", version = { ref = "jackson" } }
    slf4j = { module = "org.slf4j:slf4j-api", version = "2.0.7" }
    bom-managed = { module = "io.micronaut:micronaut-inject" }
    strict = { module = "io.micronaut:micronaut-core", version = { require = "4.0.0" } }

    [bundles]
    jackson = ["jackson-core"]

    [plugins]
    shadow = "com.github.johnrengelman.shadow:8.1.1"
    micronaut-app = { id = "io.micronaut.application", version.ref = "micronaut" }
"""


class TestParseCatalogFile:
    """Tests for parse_catalog_file()."""

    def test_parses_every_notation(self, tmp_path):
        path = write_catalog(tmp_path, "libs.versions.toml", FULL_CATALOG)
        catalog = parse_catalog_file(str(path))

        assert catalog.name == "libs"
        assert catalog.relative_path == "libs.versions.toml"
        assert dict(catalog.versions) == {"jackson": "2.15.0", "micronaut": "4.1.0"}

        guava = catalog.entry("guava")
        assert guava.coordinate == ModuleCoordinate("com.google.guava", "guava")
        assert guava.version == "30.0-jre"
        assert guava.version_ref is None

        core = catalog.entry("jackson-core")
        assert core.version == "2.15.0"
        assert core.version_ref == "jackson"
        alias = catalog.entry("jackson-core-alias")
        assert alias.coordinate == core.coordinate
        assert alias.version_ref == "jackson"

        assert catalog.entry("slf4j").version == "2.0.7"
        assert catalog.entry("bom-managed").is_versioned is False
        assert catalog.entry("strict").version == "4.0.0"

    def test_plugins_use_marker_coordinates(self, tmp_path):
        path = write_catalog(tmp_path, "libs.versions.toml", FULL_CATALOG)
        catalog = parse_catalog_file(str(path))

        shadow = catalog.entry("plugins.shadow")
        assert shadow.kind is EntryKind.PLUGIN
        assert shadow.coordinate == ModuleCoordinate(
            "com.github.johnrengelman.shadow", "com.github.johnrengelman.shadow.gradle.plugin"
        )
        assert shadow.version == "8.1.1"
        app = catalog.entry("plugins.micronaut-app")
        assert app.version == "4.1.0"
        assert app.version_ref == "micronaut"

    def test_entries_are_read_only(self, tmp_path):
        path = write_catalog(tmp_path, "libs.versions.toml", FULL_CATALOG)
        catalog = parse_catalog_file(str(path))
        assert isinstance(catalog.entries, tuple)
        with pytest.raises(TypeError):
            catalog.versions["jackson"] = "9.9"

    def test_reading_does_not_modify_file(self, tmp_path):
        path = write_catalog(tmp_path, "libs.versions.toml", FULL_CATALOG)
        before = path.read_bytes()
        parse_catalog_file(str(path))
        assert path.read_bytes() == before

    @pytest.mark.parametrize("body, message", [
        ('[libraries]\nguava = "com.google.guava:guava:1"\nguava = "x:y:2"\n', "Invalid TOML"),
        ('[libraries]\njackson-core = "a:b:1"\njackson_core = "a:c:1"\n', "Duplicate alias"),
        ('[libraries]\nfoo = { version = "1.0" }\n', "missing 'module' or 'group'"),
        ('[libraries]\nfoo = { group = "a", version = "1.0" }\n', "missing 'name'"),
        ('[libraries]\nfoo = { module = "a:b", version.ref = "nope" }\n', "unknown version 'nope'"),
        ('[libraries]\nfoo = "only-one-part"\n', "group:artifact"),
        ('[plugins]\nbar = { version = "1.0" }\n', "missing 'id'"),
        ('[versions]\nx = { reject = ["1.0"] }\n', "no usable version"),
        (
            '[versions]\njackson = "2.15.0"\n[libraries]\n'
            'core = { module = "c.f:core", version.ref = "jackson" }\n'
            'databind = { module = "c.f:databind", version.ref = "jackson" }\n',
            "shared by different modules",
        ),
    ])
    def test_malformed_catalogs(self, tmp_path, body, message):
        path = tmp_path / "broken.versions.toml"
        path.write_text(body, encoding="utf-8")
        with pytest.raises(CatalogParseError) as excinfo:
            parse_catalog_file(str(path))
        assert message in str(excinfo.value)
        assert excinfo.value.catalog == "broken"
        assert excinfo.value.path == str(path)


class TestVersionSelectors:
    """Rich declarations, ranges and prefix selectors."""

    def test_rich_version_prefers_pinned_value(self, tmp_path):
        path = write_catalog(tmp_path, "libs.versions.toml", """\
            [versions]
            jackson = { strictly = "[2.15, 3[", prefer = "2.15.0" }
            netty = { require = "4.1.100.Final", strictly = "[4.1, 5.0)" }

            [libraries]
            databind = { module = "com.fasterxml.jackson.core:jackson-databind", version.ref = "jackson" }
        """)
        catalog = parse_catalog_file(str(path))

        assert catalog.versions["jackson"] == "2.15.0"
        assert catalog.versions["netty"] == "4.1.100.Final"
        assert catalog.entry("databind").version == "2.15.0"
        assert catalog.entry("databind").is_dynamic is False

    @pytest.mark.parametrize("declaration", [
        '"com.google.guava:guava:30.+"',
        '{ module = "com.google.guava:guava", version = "latest.release" }',
        '{ module = "com.google.guava:guava", version = { strictly = "[30.0, 31.0)" } }',
        '{ module = "com.google.guava:guava", version = "+" }',
    ])
    def test_selectors_are_dynamic(self, tmp_path, declaration):
        path = tmp_path / "libs.versions.toml"
        path.write_text(f"[libraries]\nguava = {declaration}\n", encoding="utf-8")

        entry = parse_catalog_file(str(path)).entry("guava")

        assert entry.is_versioned is True
        assert entry.is_dynamic is True


class TestParseDirectory:
    """Tests for parse_directory()."""

    def test_independent_catalogs(self, tmp_path):
        write_catalog(tmp_path, "libs.versions.toml", '[libraries]\nguava = "com.google.guava:guava:30.0-jre"\n')
        write_catalog(tmp_path, "broken.versions.toml", '[libraries]\nfoo = { version = "1" }\n')
        write_catalog(tmp_path, "notes.toml", '[libraries]\nfoo = "a:b:1"\n')

        scan = parse_directory(str(tmp_path))

        assert [c.name for c in scan.catalogs] == ["libs"]
        assert len(scan.errors) == 1
        assert scan.errors[0].catalog == "broken"

    def test_missing_directory_raises(self, tmp_path):
        with pytest.raises(CatalogParseError):
            parse_directory(str(tmp_path / "absent"))

    def test_recursive_skips_excluded(self, tmp_path):
        nested = tmp_path / "nested"
        nested.mkdir()
        output = tmp_path / "updates"
        output.mkdir()
        write_catalog(tmp_path, "libs.versions.toml", '[libraries]\na = "g:a:1.0"\n')
        write_catalog(nested, "tools.versions.toml", '[libraries]\nb = "g:b:1.0"\n')
        write_catalog(output, "libs.versions.toml", '[libraries]\na = "g:a:2.0"\n')

        flat = parse_directory(str(tmp_path))
        assert [c.relative_path for c in flat.catalogs] == ["libs.versions.toml"]

        deep = parse_directory(str(tmp_path), recursive=True, exclude=[str(output)])
        assert sorted(c.relative_path for c in deep.catalogs) == [
            "libs.versions.toml", "nested/tools.versions.toml",
        ]

    def test_catalog_name_for(self):
        assert catalog_name_for("/x/gradle/libs.versions.toml") == "libs"
        assert catalog_name_for("mn.versions.toml") == "mn"
