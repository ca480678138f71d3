"""Pytest configuration for the markdown examples under docs/."""

from os import chdir, getcwd
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import Any

from sybil import Sybil
from sybil.parsers.markdown import PythonCodeBlockParser, SkipParser

from linode_engine.backends import get_backend, set_backend


def documentation_setup(namespace: dict[str, Any]) -> None:
    """Run each document in a scratch directory with a known backend."""
    scratch = TemporaryDirectory()
    namespace["_scratch"] = scratch
    namespace["_cwd"] = getcwd()
    namespace["_backend"] = get_backend()
    chdir(scratch.name)


def documentation_teardown(namespace: dict[str, Any]) -> None:
    """Restore the working directory and backend after a document."""
    chdir(namespace["_cwd"])
    set_backend(namespace["_backend"])
    namespace["_scratch"].cleanup()


pytest_collect_file = Sybil(
    parsers=[
        PythonCodeBlockParser(),
        SkipParser(),
    ],
    path=str(Path(__file__).parent / "docs"),
    pattern="**/*.md",
    setup=documentation_setup,
    teardown=documentation_teardown,
).pytest()
