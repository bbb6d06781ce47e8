"""
Provide the replication of Archival Information Packages (AIPs) to replica stores.

An AIP is created for a digital object by a :py:class:`~replicate.pack.Packer`, staged locally, 
and handed to a replica store which decides whether the content actually needs to be sent 
(see :py:mod:`replicate.transmit`).
"""
import os

from .base import SystemInfoMixin
from .exceptions import *

try:
    from .version import __version__
except ImportError:
    __version__ = "(unset)"

_REPLSYSNAME = "AIP Replication Service"
_REPLSYSABBREV = "REPL"

class ReplicateSystem(SystemInfoMixin):
    """
    A SystemInfoMixin representing the overall replication system.
    """
    def __init__(self, subsysname="", subsysabbrev=""):
        super(ReplicateSystem, self).__init__(_REPLSYSNAME, _REPLSYSABBREV, subsysname, subsysabbrev,
                                              __version__)

system = ReplicateSystem()
