"""
Base classes shared across the replication system
"""
import logging

class SystemInfoMixin(object):
    """
    a mixin that provides static information about the system that a class belongs to.  
    """

    def __init__(self, sysname, sysabbrev, subsysname, subsysabbrev, version):
        self._sysname = sysname
        self._sysabbrev = sysabbrev
        self._subname = subsysname
        self._subabbrev = subsysabbrev
        self._sysver = version

    @property
    def system_name(self):
        return self._sysname

    @property
    def system_abbrev(self):
        return self._sysabbrev

    @property
    def subsystem_name(self):
        return self._subname

    @property
    def subsystem_abbrev(self):
        return self._subabbrev

    @property
    def system_version(self):
        return self._sysver

    def get_logger(self):
        """
        return a Logger named for this system (and subsystem, if set)
        """
        log = logging.getLogger(self.system_abbrev)
        if self.subsystem_abbrev:
            log = log.getChild(self.subsystem_abbrev)
        return log
