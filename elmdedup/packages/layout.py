"""On-disk layout of the cloned package tree.

    <repos>/<author>/<project>/<version>/

Every walk is sorted so runs over the same tree visit packages in the same order.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path


def version_root(repos_dir: Path, name: str, version: str) -> Path:
    """Directory a package version is cloned into. name is "author/project"."""
    return repos_dir / name / version


def _sorted_dirs(path: Path) -> list[Path]:
    return sorted(p for p in path.iterdir() if p.is_dir())


def iter_version_roots(repos_dir: Path) -> Iterator[Path]:
    """Yield every <author>/<project>/<version> directory under repos_dir."""
    if not repos_dir.is_dir():
        return
    for author_root in _sorted_dirs(repos_dir):
        for package_root in _sorted_dirs(author_root):
            yield from _sorted_dirs(package_root)


def has_tests(root: Path) -> bool:
    return (root / "tests").exists() and (root / "elm.json").exists()


def iter_test_roots(repos_dir: Path) -> Iterator[Path]:
    """Yield the version roots that have both a tests/ directory and an elm.json."""
    for root in iter_version_roots(repos_dir):
        if has_tests(root):
            yield root
