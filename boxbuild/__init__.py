"""boxbuild: incremental builds of container images from scripted definitions.

Definitions are shell scripts (``*.box``) that drive buildah. boxbuild
resolves their declared dependencies, fingerprints each definition and its
dependency tree, and only rebuilds what changed since the last image.
"""

__version__ = "0.5.0"
__description__ = "A simple container manager for your shell"

from boxbuild.core.definition_store import DefinitionStore
from boxbuild.core.dependency_graph import DependencyGraph
from boxbuild.core.resolver import BuildSetResolver
from boxbuild.cli.app import app as cli

__all__ = ["BuildSetResolver", "DefinitionStore", "DependencyGraph", "cli", "__version__"]
