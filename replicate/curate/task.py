"""
The base class for curation tasks
"""
import logging
from abc import ABCMeta, abstractmethod

from . import Status, SuspendPolicy, system as _sys

class CurationTask(metaclass=ABCMeta):
    """
    a task that operates on one digital object at a time.  Subclasses implement
    :py:meth:`perform`, recording a result message with :py:meth:`set_result` and sending
    noteworthy messages to the curator's report via :py:meth:`report`.

    Class-level settings:

    ``distributive``
        if True, the task handles containers itself: the curator applies it only to the objects
        it is given and not to their members.  If False (the default), the curator also applies
        the task to the members of container objects.
    ``suspend``
        the :py:class:`~replicate.curate.SuspendPolicy` the curator should apply when this task
        fails on an object.
    """
    distributive = False
    suspend = SuspendPolicy.NEVER

    def __init__(self):
        self.curator = None
        self.taskid = None
        self.log = None

    def init(self, curator, taskid: str):
        """
        attach this task to a curator under the given task identifier.  Subclasses that override
        this should call this implementation.
        """
        self.curator = curator
        self.taskid = taskid
        self.log = logging.getLogger(_sys.system_abbrev).getChild(_sys.subsystem_abbrev) \
                          .getChild(taskid)

    @property
    def config(self):
        """
        the configuration of the curator this task is attached to (an empty dict if unattached)
        """
        if self.curator is None:
            return {}
        return self.curator.config

    @abstractmethod
    def perform(self, objid: str) -> Status:
        """
        apply this task to the object with the given identifier
        :rtype: Status
        :raises ReplicateException:  if the task could not be applied because of an error
        """
        raise NotImplementedError()

    def set_result(self, message: str, objid: str=None):
        """
        record the result message for the object currently being operated on
        """
        if self.curator is not None:
            self.curator.set_result(self.taskid, message, objid)

    def report(self, message: str):
        """
        send a message to the curator's report
        """
        if self.curator is not None:
            self.curator.report(message)
        elif self.log:
            self.log.info(message)
