"""Contracts - the tree controller and the arborist."""

from vmtree.contracts.arborist import Arborist, TreeRecord, deploy_arborist
from vmtree.contracts.vmtree import VMTree

__all__ = [
    "Arborist",
    "TreeRecord",
    "VMTree",
    "deploy_arborist",
]
