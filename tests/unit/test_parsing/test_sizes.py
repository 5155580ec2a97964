"""
Tests for artifact size measurement.
"""

import pytest

from ciwatch.parsing import format_size, measure_path_size, parse_artifact_spec


@pytest.mark.unit
class TestMeasurePathSize:
    """Test cases for measure_path_size."""

    def test_file_rounds_up(self, temp_dir):
        path = temp_dir / "App"
        path.write_bytes(b"x" * 1025)

        assert measure_path_size(path) == 2

    def test_directory_sums_files(self, temp_dir):
        bundle = temp_dir / "App.app"
        (bundle / "Frameworks").mkdir(parents=True)
        (bundle / "App").write_bytes(b"x" * 2048)
        (bundle / "Frameworks" / "Lib").write_bytes(b"x" * 10)
        (bundle / "empty").write_bytes(b"")

        assert measure_path_size(bundle) == 3

    def test_missing_path(self, temp_dir):
        assert measure_path_size(temp_dir / "nothing") is None


@pytest.mark.unit
class TestArtifactSpec:
    """Test cases for artifact entries and size formatting."""

    def test_named_and_bare(self):
        assert parse_artifact_spec("app = build/App.app") == ("app", "build/App.app")
        assert parse_artifact_spec(".build/release/App") == ("App", ".build/release/App")

    @pytest.mark.parametrize(
        "size_kb,expected",
        [(512, "512 KB"), (1536, "1.5 MB"), (2 * 1024 * 1024, "2.00 GB")],
    )
    def test_format_size(self, size_kb, expected):
        assert format_size(size_kb) == expected
