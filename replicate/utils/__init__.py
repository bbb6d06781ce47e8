"""
Utility functions and classes used across the replication system
"""
from .logging import blab, BLAB
from .datamgmt import checksum_of, formatBytes
