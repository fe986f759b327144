"""Unit tests for the reported service version."""

from __future__ import annotations

import importlib.metadata
import tomllib
from pathlib import Path

import pytest

import discordage

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def test_version_matches_pyproject_when_installed() -> None:
    if discordage.__version__ == discordage.UNKNOWN_VERSION:
        pytest.skip("discordage is not installed")

    with (PROJECT_ROOT / "pyproject.toml").open("rb") as fh:
        declared = tomllib.load(fh)["project"]["version"]

    assert discordage.__version__ == declared


def test_uninstalled_checkout_warns_and_reports_unknown(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def _not_installed(name: str) -> str:
        raise importlib.metadata.PackageNotFoundError(name)

    monkeypatch.setattr(discordage, "version", _not_installed)

    with pytest.warns(RuntimeWarning, match="No installed metadata for 'discordage'"):
        reported = discordage._installed_version()

    assert reported == "0.0.0+unknown"
