"""
Tests for the project metadata.
"""

from pathlib import Path

PYPROJECT = Path(__file__).parent.parent / "pyproject.toml"


class TestProjectMetadata:
    """pyproject.toml contents."""

    def test_readme_points_to_a_readme(self):
        lines = [line.strip() for line in PYPROJECT.read_text().splitlines()]

        for line in lines:
            if not line.startswith("readme"):
                continue
            name = line.split("=", 1)[1].strip().strip('"')
            assert Path(name).stem.upper() == "README"
            assert (PYPROJECT.parent / name).exists()
