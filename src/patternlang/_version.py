"""Installed version of patternlang."""

from importlib.metadata import PackageNotFoundError, version


def get_version() -> str:
    try:
        return version("patternlang")
    except PackageNotFoundError:
        return "0.0.0"
