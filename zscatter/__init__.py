"""
zscatter - synthetic point cloud generation and chunked HTTP streaming.
"""

__version__ = '1.0.0'
