"""
Transmission of AIPs to a replica store.

The :py:class:`TransmissionPipeline` creates an AIP for a digital object and hands it to a replica
store, which transfers it only if the store does not already hold identical content.  Each call
to :py:meth:`~TransmissionPipeline.process` ends in exactly one of the following ways:

  * SKIP:    the object is listed in the skip list; no AIP is created
  * UNSET:   the replica store reported that the transfer failed
  * SUCCESS: the store already held a matching copy (nothing was sent), or the AIP was sent
  * an :py:class:`~replicate.exceptions.AIPProcessingError` is raised if the AIP could not be
    staged or created.

The pipeline is wrapped as curation tasks, :py:class:`TransmitAIP` and :py:class:`TransmitSingleAIP`,
for running over batches of objects with a :py:class:`~replicate.curate.Curator`.
"""
import logging
from collections.abc import Mapping
from typing import Tuple

from .exceptions import ReplicateException, ConfigurationException, AIPProcessingError
from .config import lookup
from .objects import ObjectSource, object_source_for
from .pack import PackerFactory, DEF_FORMAT
from .store import TransferOutcome, ReplicaManager
from .curate import Status, SuspendPolicy, CurationTask
from . import system as _sys

GROUP_PROP = "replicate.group.aip.name"
SKIPLIST_PROP = "replicate.transmitaip.skiplist"

SKIP_MSG = "This item is in the replicate skiplist: {0}"
FAILED_MSG = "Transmission to {0} failed for: {1}"
MATCHED_MSG = "Checksum matched. New AIP was not transmitted for {0}"
CREATED_MSG = "Created AIP: '{0}' size: {1}"

class SkipFilter(object):
    """
    a filter that identifies objects that should not be transmitted.  It is built from a
    comma-separated list of object identifiers; whitespace around each identifier is ignored
    when comparing.
    """

    def __init__(self, skiplist: str=None):
        """
        :param str skiplist:  the comma-separated list of identifiers to skip; None or an empty
                              string means that no objects are skipped.
        """
        self._ids = tuple(skiplist.split(',')) if skiplist else ()

    @property
    def ids(self):
        """
        the identifiers in the skip list, as given (i.e. untrimmed)
        """
        return list(self._ids)

    def should_skip(self, objid: str) -> bool:
        """
        return True if the object with the given identifier should be skipped
        """
        for id in self._ids:
            if id.strip() == objid:
                return True
        return False

    def __bool__(self):
        return len(self._ids) > 0

class TransmissionPipeline(object):
    """
    the process of creating an AIP for an object and transmitting it to a replica store.

    The pipeline holds no per-object state, so it can process different objects from multiple
    threads at once.  Callers must not process the same object concurrently, as both would stage
    the AIP to the same location.
    """

    def __init__(self, replicas, packers, group: str, skiplist=None, log=None):
        """
        :param replicas:      the replica store, providing ``stage(group, objid)`` and
                              ``transfer(group, artifact)`` (e.g. a ReplicaManager)
        :param packers:       the factory for Packers, providing ``instance(objid)``
        :param str    group:  the name of the store group to transmit AIPs into
        :param skiplist:      the objects not to transmit, either as a SkipFilter or as a
                              comma-separated string of identifiers
        :param Logger   log:  the Logger to send messages to
        """
        if not group:
            raise ConfigurationException("TransmissionPipeline: a store group name is required")
        self.replicas = replicas
        self.packers = packers
        self.group = group
        if not isinstance(skiplist, SkipFilter):
            skiplist = SkipFilter(skiplist)
        self.skipfilter = skiplist
        if not log:
            log = logging.getLogger(_sys.system_abbrev).getChild("transmit")
        self.log = log

    @property
    def store_name(self):
        return getattr(self.replicas, 'store_name', "replica store")

    def should_skip(self, objid: str) -> bool:
        return self.skipfilter.should_skip(objid)

    def process(self, objid: str) -> Tuple[Status, str]:
        """
        create the AIP for the given object and transmit it to the replica store (unless
        the object is in the skip list).
        The SKIP and UNSET messages are not logged here; the caller is expected to report them.
        :return:  a 2-tuple giving the resulting status and a message describing the outcome
        :raises AIPProcessingError:  if the AIP could not be staged or created
        """
        if self.should_skip(objid):
            msg = SKIP_MSG.format(objid)
            self.log.debug("%s: in skip list", objid)
            return (Status.SKIP, msg)

        try:
            location = self.replicas.stage(self.group, objid)
            artifact = self.packers.instance(objid).pack(location)
        except (ReplicateException, OSError) as ex:
            self.log.error("Unable to create AIP for %s: %s", objid, str(ex))
            raise AIPProcessingError(objid, ex)

        # the store may remove the staged file, so note its name and size first
        name, length = artifact.name, artifact.length

        outcome = self.replicas.transfer(self.group, artifact)
        if not isinstance(outcome, TransferOutcome):
            outcome = TransferOutcome.from_size(outcome)

        if outcome.is_failed:
            msg = FAILED_MSG.format(self.store_name, objid)
            self.log.debug("%s: transfer failed", objid)
            return (Status.UNSET, msg)

        if outcome.is_matched:
            msg = MATCHED_MSG.format(objid)
        else:
            msg = CREATED_MSG.format(name, length)
        self.log.info(msg)
        return (Status.SUCCESS, msg)

def from_config(config: Mapping, objects: ObjectSource=None, log=None) -> TransmissionPipeline:
    """
    create a TransmissionPipeline from the full system configuration.  The following parameters
    are used:

    ``replicate.group.aip.name``
        (required) the store group that AIPs are transmitted into
    ``replicate.transmitaip.skiplist``
        the comma-separated list of objects not to transmit
    ``replicate``
        the ReplicaManager configuration (see :py:class:`~replicate.store.ReplicaManager`)
    ``packer``
        the PackerFactory configuration, including ``pkgtype`` and ``format``
    ``objects``
        the configuration of the source of objects (used if ``objects`` is not provided)

    :param dict        config:  the system configuration
    :param ObjectSource objects: the source of objects to package
    """
    if config is None:
        config = {}
    group = lookup(config, GROUP_PROP)
    if not group:
        raise ConfigurationException("Missing required config parameter: "+GROUP_PROP)

    if not objects:
        objects = object_source_for(config.get('objects'))
    pkcfg = config.get('packer', {})
    packers = PackerFactory(objects, pkcfg)
    replicas = ReplicaManager(config.get('replicate', {}), archfmt=pkcfg.get('format', DEF_FORMAT))

    return TransmissionPipeline(replicas, packers, group, lookup(config, SKIPLIST_PROP), log)

class TransmitAIP(CurationTask):
    """
    a curation task that creates an AIP for an object and transmits it to the replica store.
    The kind of AIP produced is set by the ``packer.pkgtype`` configuration parameter.

    The task suspends an interactively run curation if an AIP fails to be generated and
    transmitted so that the user learns of the problem right away.  Objects that are members of
    a container are also transmitted (see :py:class:`TransmitSingleAIP`).
    """
    suspend = SuspendPolicy.INTERACTIVE

    def __init__(self, pipeline: TransmissionPipeline=None):
        """
        :param TransmissionPipeline pipeline:  the pipeline to use; if not provided, one will be
                                    created from the curator's configuration when the task is
                                    attached to it.
        """
        super(TransmitAIP, self).__init__()
        self.pipeline = pipeline

    def init(self, curator, taskid):
        super(TransmitAIP, self).init(curator, taskid)
        if not self.pipeline:
            self.pipeline = from_config(curator.config, curator.objects, self.log)

    def perform(self, objid: str) -> Status:
        status, msg = self.pipeline.process(objid)
        self.set_result(msg)
        if status in (Status.SKIP, Status.UNSET):
            self.report(msg)
        return status

class TransmitSingleAIP(TransmitAIP):
    """
    a version of :py:class:`TransmitAIP` that transmits only the objects it is given and never
    the members of container objects.
    """
    distributive = True
