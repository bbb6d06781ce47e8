"""
Support for replica stores: systems that durably hold copies of AIPs, organized into named groups.

A backend store is accessed through an implementation of the :py:class:`ObjectStore` interface;
the :py:class:`~replicate.store.manager.ReplicaManager` puts a store to use for staging and
transferring AIPs.  The outcome of transferring an AIP is reported as a :py:class:`TransferOutcome`.
"""
from abc import ABCMeta, abstractmethod
from collections.abc import Mapping

from ..exceptions import ConfigurationException, ReplicaStoreError

class TransferOutcome(object):
    """
    the result of an attempt to transfer an AIP to a replica store.  The outcome is one of three
    kinds:

    ``FAILED``
        the store could not accept the AIP
    ``MATCHED``
        the store already holds content identical to the AIP; nothing was sent
    ``TRANSFERRED``
        the AIP was sent; ``size`` gives the number of bytes the store considers transferred.
    """
    FAILED = "failed"
    MATCHED = "matched"
    TRANSFERRED = "transferred"

    def __init__(self, kind: str, size: int=0):
        if kind not in (self.FAILED, self.MATCHED, self.TRANSFERRED):
            raise ValueError("TransferOutcome: unrecognized kind: "+str(kind))
        if kind != self.TRANSFERRED:
            size = 0
        elif size < 0:
            raise ValueError("TransferOutcome: transferred size must not be negative")
        self._kind = kind
        self._size = size

    @classmethod
    def failed(cls):
        return cls(cls.FAILED)

    @classmethod
    def matched(cls):
        return cls(cls.MATCHED)

    @classmethod
    def transferred(cls, size: int):
        return cls(cls.TRANSFERRED, size)

    @classmethod
    def from_size(cls, size: int):
        """
        convert a signed size value, where -1 indicates failure, 0 indicates a checksum match,
        and a positive value indicates the number of bytes transferred, into a TransferOutcome.
        """
        if size < 0:
            return cls.failed()
        if size == 0:
            return cls.matched()
        return cls.transferred(size)

    @property
    def kind(self):
        return self._kind

    @property
    def size(self):
        """
        the number of bytes transferred (zero unless the kind is TRANSFERRED)
        """
        return self._size

    @property
    def is_failed(self):
        return self._kind == self.FAILED

    @property
    def is_matched(self):
        return self._kind == self.MATCHED

    @property
    def is_transferred(self):
        return self._kind == self.TRANSFERRED

    def to_size(self):
        """
        return this outcome as a signed size value (see :py:meth:`from_size`)
        """
        if self.is_failed:
            return -1
        return self._size

    def __eq__(self, other):
        return isinstance(other, TransferOutcome) and \
               self._kind == other._kind and self._size == other._size

    def __hash__(self):
        return hash((self._kind, self._size))

    def __repr__(self):
        if self.is_transferred:
            return "TransferOutcome(%s, %d)" % (self._kind, self._size)
        return "TransferOutcome(%s)" % self._kind

class ObjectStore(metaclass=ABCMeta):
    """
    an interface to a backend replica store.  Stored objects are files addressed by a group name
    and an object (file) name.
    """

    def __init__(self, config: Mapping=None, log=None):
        if config is None:
            config = {}
        self.cfg = config
        self.log = log

    @property
    def name(self):
        """
        a human-readable name for this store for use in messages
        """
        return self.cfg.get('name', self.__class__.__name__)

    @abstractmethod
    def object_exists(self, group: str, objname: str) -> bool:
        """
        return True if the named object exists in the given group
        """
        raise NotImplementedError()

    @abstractmethod
    def object_checksum(self, group: str, objname: str) -> str:
        """
        return the checksum of the named object as recorded by the store, or None if the
        object does not exist.  The checksum algorithm is given by the ``checksum_alg`` property.
        """
        raise NotImplementedError()

    @property
    def checksum_alg(self):
        """
        the name of the checksum algorithm this store uses to identify content
        """
        return "sha256"

    @abstractmethod
    def transfer_object(self, group: str, filepath) -> TransferOutcome:
        """
        copy the given file into the given group of the store, unless the store already holds
        identical content under the file's name.  Failures of the store are reported as a FAILED
        outcome rather than raised.
        """
        raise NotImplementedError()

    @abstractmethod
    def remove_object(self, group: str, objname: str) -> bool:
        """
        remove the named object from the given group; return False if it did not exist
        """
        raise NotImplementedError()

_store_types = {}

def register_store_type(typename: str, ctor):
    """
    make an ObjectStore class available under the given type name (the value of the ``type``
    configuration parameter)
    """
    _store_types[typename] = ctor

def object_store_for(config: Mapping, log=None) -> ObjectStore:
    """
    instantiate the ObjectStore described by the given configuration.  The ``type`` parameter
    selects the implementation (default: ``local``).
    """
    if config is None:
        config = {}
    stype = config.get('type', 'local')
    if stype not in _store_types:
        raise ConfigurationException("replicate.store.type: unsupported store type: "+str(stype))
    return _store_types[stype](config, log)

from .local import LocalObjectStore
from .rest import RESTObjectStore
register_store_type("local", LocalObjectStore)
register_store_type("remote", RESTObjectStore)

from .manager import ReplicaManager
