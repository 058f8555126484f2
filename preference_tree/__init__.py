"""Preference Tree.

Turns a tabular product catalog into interpretable binary-choice questions by
growing unsupervised preference trees over the catalog's attributes.
"""

from importlib.metadata import PackageNotFoundError, version as _pkg_version
from pathlib import Path


def _detect_version() -> str:
    """Return the installed distribution version, with a dev fallback.

    First tries importlib.metadata for the installed wheel/sdist. If that fails
    (e.g., running directly from a source checkout without installation), it
    reads the static ``[project].version`` from ``pyproject.toml`` at the
    repository root. As a last resort, returns a sentinel version string.
    """
    distribution_name = "preference-tree"

    try:
        return _pkg_version(distribution_name)
    except PackageNotFoundError:
        pass

    pyproject_path = Path(__file__).resolve().parent.parent / "pyproject.toml"
    if pyproject_path.is_file():
        import tomllib

        try:
            data = tomllib.loads(pyproject_path.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError):
            data = {}
        project_version = data.get("project", {}).get("version")
        if isinstance(project_version, str) and project_version:
            return project_version

    return "0.0.0+unknown"


__version__: str = _detect_version()

from .engine import CatalogBuild, TreeMetrics, build_catalog  # noqa: E402
from .engine import compute_tree_metrics, dumps_build, loads_build  # noqa: E402
from .engine import loads_tree  # noqa: E402
from .oblique import BuildOptions, build_oblique_tree  # noqa: E402
from .question_tree import build_question_tree  # noqa: E402
from .questions import generate_question, generate_attribute_question  # noqa: E402

__all__ = [
    "__version__",
    "CatalogBuild",
    "TreeMetrics",
    "BuildOptions",
    "build_catalog",
    "build_oblique_tree",
    "build_question_tree",
    "compute_tree_metrics",
    "dumps_build",
    "loads_build",
    "loads_tree",
    "generate_question",
    "generate_attribute_question",
]
