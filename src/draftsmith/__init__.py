"""
Draftsmith - hierarchy engine for a note-taking service.

This package keeps two independent forests (notes and tags) acyclic,
rebuilds tree views from flat edge lists and prunes those views down to
a set of interesting nodes. Persistence is delegated to a Graph Store.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("draftsmith")
except PackageNotFoundError:
    __version__ = "0.3.0"
