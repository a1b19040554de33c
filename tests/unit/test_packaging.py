"""
Tests for package discovery.
"""

from pathlib import Path

import pytest
from setuptools import find_namespace_packages

ROOT = Path(__file__).resolve().parents[2]

SUBPACKAGES = [
    "streamgate.api",
    "streamgate.api.middleware",
    "streamgate.api.routes",
    "streamgate.client",
    "streamgate.exceptions",
    "streamgate.gateway",
    "streamgate.llm",
    "streamgate.models",
    "streamgate.streaming",
    "streamgate.utils",
]


class TestPackageDiscovery:
    """Test every subpackage ships in a built distribution."""

    def test_namespace_discovery_enabled(self) -> None:
        """Test directories without __init__ are still packaged."""
        tomllib = pytest.importorskip("tomllib")
        settings = tomllib.loads((ROOT / "pyproject.toml").read_text())

        find = settings["tool"]["setuptools"]["packages"]["find"]

        assert find["namespaces"] is True
        assert find["include"] == ["streamgate*"]

    def test_all_subpackages_found(self) -> None:
        packages = find_namespace_packages(where=str(ROOT), include=["streamgate*"])

        assert set(SUBPACKAGES) <= set(packages)
