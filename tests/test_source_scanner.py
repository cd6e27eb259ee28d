"""
Tests for compilation unit discovery
"""

import pytest

from spring_twin.analysis.package_filter import PackageFilter
from spring_twin.analysis.source_scanner import SourceScanner, read_package_name
from spring_twin.errors import ConfigurationError

from conftest import write_sources


@pytest.mark.unit
class TestSourceScanner:
    def test_discovers_all_units(self, sample_project):
        units = list(SourceScanner(sample_project).scan())
        assert len(units) == 6
        packages = {unit.package_name for unit in units}
        assert "com.acme.shop.web" in packages
        assert all(unit.relative_path.startswith("src/main/java/") for unit in units)

    def test_sequence_is_restartable(self, sample_project):
        sequence = SourceScanner(sample_project).scan()
        first = [unit.relative_path for unit in sequence]
        second = [unit.relative_path for unit in sequence]
        assert first == second
        assert sequence.count() == len(first)

    def test_filters_apply_with_exclude_precedence(self, sample_project):
        scanner = SourceScanner(
            sample_project,
            PackageFilter(include_packages=["com.acme.shop"], exclude_packages=["com.acme.shop.internal"]),
        )
        packages = {unit.package_name for unit in scanner.scan()}
        assert "com.acme.shop.internal.legacy" not in packages
        assert packages == {
            "com.acme.shop.web",
            "com.acme.shop.service",
            "com.acme.shop.repository",
            "com.acme.shop.model",
        }

    def test_missing_root_is_configuration_error(self, tmp_path):
        with pytest.raises(ConfigurationError):
            SourceScanner(tmp_path / "does-not-exist")

    def test_file_root_is_configuration_error(self, tmp_path):
        target = tmp_path / "file.txt"
        target.write_text("x")
        with pytest.raises(ConfigurationError):
            SourceScanner(target)

    def test_falls_back_to_root_without_source_roots(self, tmp_path):
        (tmp_path / "a").mkdir()
        (tmp_path / "a" / "Thing.java").write_text("package a;\nclass Thing {}\n")
        units = list(SourceScanner(tmp_path).scan())
        assert [unit.package_name for unit in units] == ["a"]

    def test_skips_build_output_and_hidden_directories(self, tmp_path):
        write_sources(
            tmp_path,
            {
                "com/acme/Real.java": "package com.acme;\nclass Real {}\n",
                "target/com/acme/Generated.java": "package com.acme;\nclass Generated {}\n",
                ".hidden/Secret.java": "class Secret {}\n",
            },
        )
        names = [unit.path.name for unit in SourceScanner(tmp_path).scan()]
        assert names == ["Real.java"]

    def test_oversized_units_are_skipped(self, tmp_path):
        write_sources(tmp_path, {"big/Big.java": "package big;\nclass Big {}\n" + "//" + "x" * 3000 + "\n"})
        scanner = SourceScanner(tmp_path, max_file_size_kb=1)
        assert list(scanner.scan()) == []
        assert list(scanner.skipped) == ["src/main/java/big/Big.java"]
        assert "exceeds the 1024 byte limit" in scanner.skipped["src/main/java/big/Big.java"]

    def test_oversized_units_outside_the_filter_are_not_recorded(self, tmp_path):
        write_sources(tmp_path, {"big/Big.java": "package big;\nclass Big {}\n" + "//" + "x" * 3000 + "\n"})
        scanner = SourceScanner(tmp_path, PackageFilter(include_packages=["other"]), max_file_size_kb=1)
        assert list(scanner.scan()) == []
        assert scanner.skipped == {}

    def test_package_falls_back_to_directory(self, tmp_path):
        write_sources(tmp_path, {"com/acme/NoPackage.java": "class NoPackage {}\n"})
        units = list(SourceScanner(tmp_path).scan())
        assert units[0].package_name == "com.acme"


@pytest.mark.unit
def test_read_package_name_ignores_comments(tmp_path):
    path = tmp_path / "A.java"
    path.write_text("/* package wrong.one; */\n// package wrong.two;\npackage com.acme . orders;\nclass A {}\n")
    assert read_package_name(path) == "com.acme.orders"
