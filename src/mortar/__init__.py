"""
Mortar renders Kubernetes manifests from a directory of (templated) YAML files, merges overlays on top of them and
shoots the result at a cluster as a single, labeled and checksum-tracked stack.
"""

__version__ = "0.1.0"
