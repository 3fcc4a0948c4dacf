"""Orchestrator for storeforge.

This module provides the orchestrator that drives the provisioning workflow of
each store and merges in-flight stores with the releases reported by helm.
"""

from .orchestrator import Orchestrator

__all__ = [
    "Orchestrator",
]
