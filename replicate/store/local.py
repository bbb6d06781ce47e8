"""
An ObjectStore that keeps replicas in a directory on a locally mounted filesystem.
"""
import os, shutil, logging
from pathlib import Path

from ..exceptions import ConfigurationException
from ..utils.datamgmt import checksum_of
from .. import system as _sys
from . import ObjectStore, TransferOutcome

class LocalObjectStore(ObjectStore):
    """
    an ObjectStore that copies AIPs into ``{dir}/{group}/{name}``.  Like a remote store, it
    compares checksums and does not overwrite a stored copy whose content is identical (reporting
    a MATCHED outcome instead).

    Configuration parameters:

    ``dir``
        (required) the root directory of the store
    """

    def __init__(self, config=None, log=None):
        super(LocalObjectStore, self).__init__(config, log)
        if not self.cfg.get('dir'):
            raise ConfigurationException("LocalObjectStore: missing required config parameter: dir")
        self.rootdir = Path(self.cfg['dir'])
        if not self.log:
            self.log = logging.getLogger(_sys.system_abbrev).getChild("store.local")

    @property
    def name(self):
        return self.cfg.get('name', "local store")

    def _path(self, group, objname):
        return self.rootdir / group / objname

    def object_exists(self, group: str, objname: str) -> bool:
        return self._path(group, objname).is_file()

    def object_checksum(self, group: str, objname: str) -> str:
        path = self._path(group, objname)
        if not path.is_file():
            return None
        return checksum_of(path, self.checksum_alg)

    def transfer_object(self, group: str, filepath) -> TransferOutcome:
        filepath = Path(filepath)
        dest = self._path(group, filepath.name)
        try:
            if dest.is_file() and \
               checksum_of(dest, self.checksum_alg) == checksum_of(filepath, self.checksum_alg):
                self.log.info("%s: stored copy has matching checksum; skipping copy", filepath.name)
                return TransferOutcome.matched()

            dest.parent.mkdir(parents=True, exist_ok=True)
            tmp = dest.with_name("_" + dest.name + ".part")
            shutil.copyfile(filepath, tmp)
            os.replace(tmp, dest)
        except OSError as ex:
            self.log.error("Failed to copy %s into %s: %s", filepath.name, str(dest.parent), str(ex))
            return TransferOutcome.failed()

        return TransferOutcome.transferred(dest.stat().st_size)

    def remove_object(self, group: str, objname: str) -> bool:
        path = self._path(group, objname)
        if not path.is_file():
            return False
        path.unlink()
        return True
