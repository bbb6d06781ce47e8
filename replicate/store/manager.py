"""
The ReplicaManager: the interface the replication tasks use to stage AIPs locally and to transfer
them into a replica store.
"""
import os, logging
from collections.abc import Mapping
from pathlib import Path

from ..exceptions import ConfigurationException, StateException
from ..objects import handle_to_filename
from ..utils.datamgmt import formatBytes
from .. import system as _sys
from . import ObjectStore, TransferOutcome, object_store_for

DEF_STAGING_DIR = "/tmp/replicate/staging"

class ReplicaManager(object):
    """
    a manager for staging AIPs and transferring them to a backend :py:class:`ObjectStore`.

    Configuration parameters:

    ``staging_dir``
        the local directory under which AIPs are staged before transfer; AIPs for a group are
        staged into a subdirectory named after the group.
    ``keep_staged``
        if True, staged AIPs are not removed after they are transferred (default: False).
        An AIP whose transfer failed is always left in place.
    ``archive_format``
        the archive format of staged AIPs, used as the staged file's extension (default: zip)
    ``store``
        the configuration of the backend store (see :py:func:`~replicate.store.object_store_for`)
    """

    def __init__(self, config: Mapping=None, objstore: ObjectStore=None, archfmt: str=None, log=None):
        """
        :param dict         config:  the manager configuration
        :param ObjectStore objstore: the backend store to use; if not provided, one is created
                                     from the ``store`` configuration parameter.
        :param str         archfmt:  the archive format of AIPs; overrides ``archive_format``
        :param Logger          log:  the Logger to send messages to
        """
        if config is None:
            config = {}
        if not isinstance(config, Mapping):
            raise ConfigurationException("ReplicaManager: config argument not a dictionary: "+
                                         str(config))
        self.cfg = config
        if not log:
            log = logging.getLogger(_sys.system_abbrev).getChild("replica")
        self.log = log

        self.stagedir = Path(self.cfg.get('staging_dir', DEF_STAGING_DIR))
        self.keep_staged = bool(self.cfg.get('keep_staged', False))
        self.archfmt = archfmt or self.cfg.get('archive_format', 'zip')

        if not objstore:
            objstore = object_store_for(self.cfg.get('store', {}), self.log.getChild("store"))
        self.store = objstore

    @property
    def store_name(self):
        """
        the name of the backend store, for use in messages
        """
        return self.store.name

    def stage(self, group: str, objid: str) -> Path:
        """
        return the local path where the AIP for an object should be written prior to its transfer
        into the given group.  This ensures that the parent directory exists but does not contact
        the backend store.
        :raises StateException:  if the staging directory cannot be created
        """
        grpdir = self.stagedir / group
        try:
            grpdir.mkdir(parents=True, exist_ok=True)
        except OSError as ex:
            raise StateException("Unable to create staging directory, %s: %s" % (grpdir, str(ex)),
                                 cause=ex, sys=_sys)
        return grpdir / ("%s.%s" % (handle_to_filename(objid), self.archfmt))

    def transfer(self, group: str, artifact) -> TransferOutcome:
        """
        transfer a staged AIP into the given group of the backend store.
        :param str   group:  the name of the group to store the AIP into
        :param artifact:     the staged AIP, either as an Artifact or a file path
        """
        path = Path(getattr(artifact, 'path', artifact))
        outcome = self.store.transfer_object(group, path)

        if outcome.is_failed:
            self.log.warning("%s: transfer to %s failed; leaving staged AIP in place",
                             path.name, self.store_name)
            return outcome

        if outcome.is_transferred:
            self.log.info("%s: transferred %s to %s/%s", path.name, formatBytes(outcome.size),
                          self.store_name, group)
        if not self.keep_staged and path.exists():
            try:
                path.unlink()
            except OSError as ex:
                self.log.warning("Unable to remove staged AIP, %s: %s", str(path), str(ex))

        return outcome
