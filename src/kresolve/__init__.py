"""
kresolve turns locators (files, directories, standard input, Git repositories, URLs, Helm charts, Jsonnet programs,
Kustomize overlays and secret definitions) into a single stream of plain Kubernetes manifests.
"""

__version__ = "0.1.0"
