"""
A small framework for running curation tasks, such as AIP transmission, over batches of digital
objects.

A task (a :py:class:`~replicate.curate.task.CurationTask`) performs its operation on one object at a
time and returns a :py:class:`Status`.  A :py:class:`~replicate.curate.curator.Curator` runs a set of
tasks over a batch of objects, collects the results, and decides whether to carry on after a
failure according to each task's :py:class:`SuspendPolicy` and the way the curator was invoked.
"""
from enum import Enum, IntEnum

from .. import ReplicateSystem

_CURSUBSYSNAME = "Curation"
_CURSUBSYSABBREV = "curate"

class CurationSystem(ReplicateSystem):
    """
    a SystemInfoMixin providing static information about the curation subsystem
    """
    def __init__(self):
        super(CurationSystem, self).__init__(_CURSUBSYSNAME, _CURSUBSYSABBREV)

system = CurationSystem()

class Status(IntEnum):
    """
    the status returned by a task after operating on an object
    """
    UNSET   = -1    # the task did not complete for this object, but not due to a systemic error
    SUCCESS = 0     # the task completed successfully
    FAIL    = 1     # the task failed for this object
    SKIP    = 2     # the object was intentionally passed over
    ERROR   = 3     # an error prevented the task from operating on the object

    @property
    def label(self):
        return self.name.lower()

class Invoked(Enum):
    """
    the manner in which a curator was invoked
    """
    INTERACTIVE = "interactive"    # by a user waiting for the results
    BATCH       = "batch"          # from an unattended (e.g. scheduled) job
    ANY         = "any"

class SuspendPolicy(Enum):
    """
    a flag, set on a task, that tells the curator whether it should stop processing a batch
    (and alert a human) when the task fails (with FAIL or ERROR) on an object.
    """
    NEVER       = "never"          # always carry on with the rest of the batch
    INTERACTIVE = "interactive"    # stop if the curator was invoked interactively
    ALWAYS      = "always"         # stop regardless of how the curator was invoked

    def applies_to(self, invoked: Invoked) -> bool:
        """
        return True if a batch run in the given mode should be suspended under this policy
        """
        if self is SuspendPolicy.ALWAYS:
            return True
        if self is SuspendPolicy.INTERACTIVE:
            return invoked in (Invoked.INTERACTIVE, Invoked.ANY)
        return False

FAILURES = (Status.FAIL, Status.ERROR)

class TaskResult(object):
    """
    the outcome of running a task on an object
    """
    def __init__(self, taskid: str, objid: str, status: Status, result: str=None):
        self.taskid = taskid
        self.objid = objid
        self.status = status
        self.result = result

    @property
    def failed(self):
        """
        True if the status indicates that the task failed on the object
        """
        return self.status in FAILURES

    def __str__(self):
        out = "%s %s: %s" % (self.status.name, self.objid, self.taskid)
        if self.result:
            out += ": " + self.result
        return out

    def __repr__(self):
        return "TaskResult(%s, %s, %s)" % (self.taskid, self.objid, self.status.name)

from .task import CurationTask
from .curator import Curator, CurationRun
