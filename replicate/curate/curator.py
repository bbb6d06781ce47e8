"""
The Curator: a batch controller that applies curation tasks to a set of digital objects.
"""
import logging, threading
from collections import OrderedDict
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List

from ..exceptions import ReplicateException
from ..objects import ObjectSource
from . import Status, Invoked, TaskResult, FAILURES, system as _sys

class CurationRun(object):
    """
    the collected results of applying a Curator's tasks to a batch of objects
    """
    def __init__(self):
        self.results = []
        self.suspended = False
        self.suspended_by = None

    def add(self, result: TaskResult):
        self.results.append(result)

    @property
    def failed(self):
        """
        True if any task failed on any object (including with an UNSET status) or if the run
        was suspended
        """
        return self.suspended or \
               any(r.status in FAILURES or r.status == Status.UNSET for r in self.results)

    def results_for(self, objid: str) -> List[TaskResult]:
        """
        return the results recorded for the object with the given identifier
        """
        return [r for r in self.results if r.objid == objid]

    def status_counts(self) -> Mapping:
        """
        return a dictionary giving the number of results for each status
        """
        out = OrderedDict()
        for r in self.results:
            out[r.status] = out.get(r.status, 0) + 1
        return out

class Curator(object):
    """
    a class that applies one or more curation tasks to batches of digital objects.

    Each object is handled independently: a task failing on one object does not affect its
    application to the others unless the failure causes the run to be suspended (see
    :py:class:`~replicate.curate.SuspendPolicy`).  Objects may be processed in parallel by a
    pool of worker threads; the identifiers in a batch are deduplicated so that no object is
    operated on by two workers at once.
    """

    def __init__(self, config: Mapping=None, invoked: Invoked=Invoked.INTERACTIVE, workers: int=1,
                 objects: ObjectSource=None, reporter=None, log=None):
        """
        :param dict        config:  the configuration made available to tasks
        :param Invoked    invoked:  the manner in which this curator is being run
        :param int        workers:  the number of objects to process in parallel
        :param ObjectSource objects: the source used to look up the members of container objects;
                                    if not provided, tasks are never applied to members.
        :param callable  reporter:  a function that accepts report messages; if not provided,
                                    messages are sent to the log.
        :param Logger         log:  the Logger to send messages to
        """
        if config is None:
            config = {}
        self.config = config
        self.invoked = invoked
        self.workers = max(1, int(workers or 1))
        self.objects = objects
        if not log:
            log = logging.getLogger(_sys.system_abbrev).getChild(_sys.subsystem_abbrev)
        self.log = log
        self._reporter = reporter

        self._tasks = OrderedDict()
        self._local = threading.local()
        self._lock = threading.Lock()
        self._halt = threading.Event()

    @property
    def task_ids(self):
        return list(self._tasks.keys())

    def add_task(self, task, taskid: str=None):
        """
        add a task to be applied by this curator
        :param CurationTask task:  the task
        :param str        taskid:  the identifier to refer to the task by; if not provided, the
                                   task's class name is used.
        """
        if not taskid:
            taskid = task.__class__.__name__
        task.init(self, taskid)
        self._tasks[taskid] = task
        return self

    def report(self, message: str):
        """
        record a message in the curation report
        """
        if self._reporter:
            with self._lock:
                self._reporter(message)
        else:
            self.log.info(message)

    def set_result(self, taskid: str, message: str, objid: str=None):
        """
        set the result message for a task operating on an object.  If ``objid`` is not given,
        the object the current thread is operating on is assumed.
        """
        if objid is None:
            objid = getattr(self._local, 'objid', None)
        results = getattr(self._local, 'results', None)
        if results is not None:
            results[(taskid, objid)] = message

    def _members_of(self, objid: str) -> List[str]:
        if not self.objects:
            return []
        try:
            obj = self.objects.get(objid)
        except ReplicateException as ex:
            self.log.warning("Unable to look up members of %s: %s", objid, str(ex))
            return []
        return list(obj.members) if obj.is_container else []

    def _plan(self, objids: Iterable[str]):
        # pair each object with the tasks that should be applied to it, expanding containers
        # for non-distributive tasks
        plan = OrderedDict()
        distrib = [t for t in self._tasks if self._tasks[t].distributive]
        nondistrib = [t for t in self._tasks if not self._tasks[t].distributive]

        def add(objid, taskids):
            if objid not in plan:
                plan[objid] = []
            for t in taskids:
                if t not in plan[objid]:
                    plan[objid].append(t)

        def descend(objid, seen):
            for mem in self._members_of(objid):
                if mem in seen:
                    continue
                seen.add(mem)
                add(mem, nondistrib)
                descend(mem, seen)

        for objid in objids:
            add(objid, [t for t in self._tasks])
            if nondistrib:
                descend(objid, set([objid]))

        # order the task ids as they were added
        return [(o, [t for t in self._tasks if t in plan[o]]) for o in plan]

    def _run_on(self, objid: str, taskids: List[str]) -> List[TaskResult]:
        out = []
        self._local.objid = objid
        self._local.results = {}
        try:
            for taskid in taskids:
                if self._halt.is_set():
                    break
                task = self._tasks[taskid]
                try:
                    status = Status(task.perform(objid))
                    result = self._local.results.get((taskid, objid))
                except ReplicateException as ex:
                    self.log.error("%s failed on %s: %s", taskid, objid, str(ex))
                    status = Status.ERROR
                    result = str(ex)
                except Exception as ex:
                    self.log.exception("Unexpected error while applying %s to %s", taskid, objid)
                    status = Status.ERROR
                    result = "Unexpected error: " + str(ex)

                res = TaskResult(taskid, objid, status, result)
                out.append(res)
                if res.failed and task.suspend.applies_to(self.invoked):
                    self.log.warning("Suspending curation: %s failed on %s", taskid, objid)
                    if not self._halt.is_set():
                        self._halt.set()
                        self._local.suspended_by = res
                    break
        finally:
            self._local.objid = None
            self._local.results = None

        return out

    def curate(self, objids: Iterable[str]) -> CurationRun:
        """
        apply this curator's tasks to the objects with the given identifiers.
        :param objids:  the identifiers of the objects to process; duplicates are ignored.
        :rtype: CurationRun
        """
        if isinstance(objids, str):
            objids = [objids]
        plan = self._plan(objids)
        run = CurationRun()
        self._halt.clear()
        suspenders = []

        def unit(objid, taskids):
            if self._halt.is_set():
                return []
            self._local.suspended_by = None
            res = self._run_on(objid, taskids)
            if self._local.suspended_by:
                suspenders.append(self._local.suspended_by)
            return res

        if self.workers > 1 and len(plan) > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                futures = [pool.submit(unit, o, t) for o, t in plan]
                for fut in futures:
                    for res in fut.result():
                        run.add(res)
        else:
            for o, t in plan:
                for res in unit(o, t):
                    run.add(res)

        if self._halt.is_set():
            run.suspended = True
            run.suspended_by = suspenders[0] if suspenders else None
            self.report("Curation suspended after failure: %s" % str(run.suspended_by))

        return run
