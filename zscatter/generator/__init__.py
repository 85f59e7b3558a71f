"""
Synthetic gaussian point cloud generation.
"""

from .cloud import CloudGenerator, ClusterParams

__all__ = ['CloudGenerator', 'ClusterParams']
