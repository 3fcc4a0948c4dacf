"""
StoreForge provisions isolated e-commerce stores on a Kubernetes cluster.

Each store is a helm release of the `universal-store` chart, installed into its
own namespace and then configured in place with WP-CLI.
"""

__all__ = [
    "command",
    "helm",
    "kubectl",
    "bootstrap",
    "orchestrator",
    "exceptions",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
