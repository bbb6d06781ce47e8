"""
Support for packaging digital objects into Archival Information Packages (AIPs).

A :py:class:`Packer` writes the AIP for a single digital object to a location given by its caller
(normally a staging location provided by a replica store).  The kind of Packer used is selected by
name via a :py:class:`PackerFactory`, usually according to the ``packer.pkgtype`` configuration
parameter.
"""
import os, logging
from abc import ABCMeta, abstractmethod
from collections.abc import Mapping
from pathlib import Path

from ..exceptions import ConfigurationException, ObjectNotFound, PersistenceError
from ..objects import ObjectSource
from .. import system as _sys

DEF_PKGTYPE = "bagit"
DEF_FORMAT = "zip"

class Artifact(object):
    """
    a packaged AIP file
    """
    def __init__(self, path):
        self.path = Path(path)

    @property
    def name(self):
        """
        the file name of the artifact
        """
        return self.path.name

    @property
    def length(self):
        """
        the size of the artifact file in bytes
        """
        return self.path.stat().st_size

    def exists(self):
        return self.path.is_file()

    def __str__(self):
        return str(self.path)

    def __repr__(self):
        return "Artifact(%s)" % str(self.path)

class Packer(metaclass=ABCMeta):
    """
    an abstract base for classes that package a digital object into an AIP file.  An instance
    packages a single object.
    """

    def __init__(self, objid: str, source: ObjectSource, config: Mapping=None, log=None):
        """
        :param str           objid:  the identifier of the object to package
        :param ObjectSource source:  the source to load the object from
        :param dict         config:  the packer configuration (the ``packer`` section of the
                                     system configuration)
        :param Logger          log:  the Logger to send messages to
        """
        self.id = objid
        self.source = source
        if config is None:
            config = {}
        self.cfg = config
        if not log:
            log = logging.getLogger(_sys.system_abbrev).getChild("pack")
        self.log = log

    @property
    def format(self):
        """
        the name of the archive format that the AIP is written in
        """
        return self.cfg.get('format', DEF_FORMAT)

    def load_object(self):
        """
        retrieve the object to be packaged from the source.  A missing object is treated as a
        failure of the persistence layer.
        :raises AuthorizationError:  if access to the object is not authorized
        :raises PersistenceError:    if the object could not be loaded
        """
        try:
            return self.source.get(self.id)
        except ObjectNotFound as ex:
            raise PersistenceError(self.id, str(ex), cause=ex)

    @abstractmethod
    def pack(self, location) -> Artifact:
        """
        write the AIP for the object to the given location and return it as an Artifact.

        :param str|Path location:  the path of the file to write; its parent directory must exist.
        :raises AuthorizationError:  if the object (or part of it) may not be read
        :raises PersistenceError:    if the object could not be loaded from its storage
        :raises PackingError:        if the AIP file could not be written
        """
        raise NotImplementedError()

class PackerFactory(object):
    """
    a factory for Packers of a configured package type.  Packer classes are registered by name;
    the name given by the ``pkgtype`` configuration parameter selects the class used.
    """
    _registry = {}

    def __init__(self, source: ObjectSource, config: Mapping=None, log=None):
        """
        :param ObjectSource source:  the source that packers should retrieve objects from
        :param dict         config:  the packer configuration; the ``pkgtype`` parameter selects
                                     the type of packer to create.
        """
        if config is None:
            config = {}
        self.source = source
        self.cfg = config
        self.pkgtype = config.get('pkgtype', DEF_PKGTYPE)
        if self.pkgtype not in self._registry:
            raise ConfigurationException("packer.pkgtype: unsupported package type: "+str(self.pkgtype))
        self.log = log

    @classmethod
    def register(cls, pkgtype: str, ctor):
        """
        make a Packer class available under a package type name
        :param str pkgtype:  the name to register the packer under
        :param ctor:         a Packer subclass (or other callable with the same constructor signature)
        """
        cls._registry[pkgtype] = ctor

    @classmethod
    def pkgtypes(cls):
        """
        return the names of the registered package types
        """
        return list(cls._registry.keys())

    def instance(self, objid: str) -> Packer:
        """
        return a Packer for the object with the given identifier
        """
        return self._registry[self.pkgtype](objid, self.source, self.cfg, self.log)

from .bagit import BagItPacker, CatalogPacker
PackerFactory.register("bagit", BagItPacker)
PackerFactory.register("catalog", CatalogPacker)
