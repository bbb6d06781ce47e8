"""
The model for the digital objects that get packaged into AIPs, along with sources that provide them.

A digital object is identified by a handle (e.g. ``123456789/42``) and carries a metadata record,
a list of bitstreams (the files that make up its content), and, if it is a container (a collection
or a community), the handles of its members.

The :py:class:`FSObjectSource` reads objects from a directory in which each object is a subdirectory
named after the object's handle (as encoded by :py:func:`handle_to_filename`).  That subdirectory
contains an object record, ``object.json`` (or ``object.yml``), and a ``data`` subdirectory holding
the bitstreams.  The object record looks like this:

.. code-block:: json

   {
       "type": "item",
       "parent": "123456789/2",
       "metadata": { "title": "Some Data", "creator": ["Doe, J."] },
       "members": [],
       "restricted": false
   }
"""
import os, json, logging
from abc import ABCMeta, abstractmethod
from collections import OrderedDict
from collections.abc import Mapping
from pathlib import Path
from typing import List

import yaml

from .exceptions import ObjectNotFound, AuthorizationError, PersistenceError, ConfigurationException
from . import system

ITEM = "item"
COLLECTION = "collection"
COMMUNITY = "community"
OBJECT_TYPES = [ ITEM, COLLECTION, COMMUNITY ]

def handle_to_filename(objid: str) -> str:
    """
    convert an object handle into a name safe for use as a file (or directory) name.  Each ``/``
    becomes ``-``; any ``-`` or ``%`` already in the handle is percent-encoded first, so that
    distinct handles always produce distinct names (e.g. ``a/b`` gives ``a-b`` while ``a-b`` gives
    ``a%2Db``).
    """
    return objid.replace('%', '%25').replace('-', '%2D').replace('/', '-')

def filename_to_handle(filename: str) -> str:
    """
    recover the object handle from a name produced by :py:func:`handle_to_filename`
    """
    return filename.replace('-', '/').replace('%2D', '-').replace('%25', '%')

class Bitstream(object):
    """
    a file that is part of a digital object's content
    """
    def __init__(self, name: str, path: str=None, size: int=None, checksum: str=None, content: bytes=None):
        """
        :param str     name:  the name of the bitstream as it should appear in the AIP
        :param str     path:  the location of the bitstream's bytes on local disk
        :param int     size:  the size of the bitstream in bytes
        :param str checksum:  the SHA-256 checksum of the bitstream, if known
        :param bytes content: the bitstream's bytes, given in lieu of a ``path``
        """
        if path is None and content is None:
            raise ValueError("Bitstream: either path or content must be provided")
        self.name = name
        self.path = path
        self.content = content
        if size is None:
            size = len(content) if content is not None else os.stat(path).st_size
        self.size = size
        self.checksum = checksum

    def __repr__(self):
        return "Bitstream(%s, size=%d)" % (self.name, self.size)

class DigitalObject(object):
    """
    a digital object that can be packaged into an AIP
    """

    def __init__(self, id: str, type: str=ITEM, metadata: Mapping=None, bitstreams: List[Bitstream]=None,
                 members: List[str]=None, parent: str=None, restricted: bool=False):
        if type not in OBJECT_TYPES:
            raise ValueError("DigitalObject: not a recognized object type: " + str(type))
        if metadata is not None and not isinstance(metadata, Mapping):
            raise ValueError("DigitalObject: metadata is not a dictionary: " + repr(metadata))
        if members is not None and not isinstance(members, (list, tuple)):
            raise ValueError("DigitalObject: members is not a list: " + repr(members))
        self.id = id
        self.type = type
        self.metadata = OrderedDict(metadata or {})
        self.bitstreams = list(bitstreams or [])
        self.members = list(members or [])
        self.parent = parent
        self.restricted = restricted

    @property
    def handle(self):
        """
        the handle that identifies this object (an alias for ``id``)
        """
        return self.id

    @property
    def is_container(self):
        """
        True if this object can contain other objects (i.e. is a collection or community)
        """
        return self.type != ITEM

    def to_dict(self):
        """
        return a JSON-serializable description of this object (excluding bitstream content)
        """
        return OrderedDict([
            ("id", self.id),
            ("type", self.type),
            ("parent", self.parent),
            ("metadata", self.metadata),
            ("bitstreams", [OrderedDict([("name", b.name), ("size", b.size), ("checksum", b.checksum)])
                            for b in self.bitstreams]),
            ("members", self.members)
        ])

    def __repr__(self):
        return "DigitalObject(%s, %s)" % (self.id, self.type)

class ObjectSource(metaclass=ABCMeta):
    """
    an interface for retrieving the digital objects that are to be packaged
    """

    @abstractmethod
    def get(self, objid: str) -> DigitalObject:
        """
        return the digital object with the given identifier
        :raises ObjectNotFound:      if the object does not exist
        :raises AuthorizationError:  if the object cannot be accessed because of access restrictions
        :raises PersistenceError:    if the object could not be loaded from its storage
        """
        raise NotImplementedError()

    def exists(self, objid: str) -> bool:
        """
        return True if an object with the given identifier is available from this source
        """
        try:
            self.get(objid)
            return True
        except ObjectNotFound:
            return False

class InMemoryObjectSource(ObjectSource):
    """
    an ObjectSource that keeps its objects in memory.
    """

    def __init__(self, objects: List[DigitalObject]=None):
        self._objs = OrderedDict()
        for obj in (objects or []):
            self.add(obj)

    def add(self, obj: DigitalObject):
        """
        add (or replace) an object in this source
        """
        self._objs[obj.id] = obj

    def get(self, objid: str) -> DigitalObject:
        if objid not in self._objs:
            raise ObjectNotFound(objid)
        return self._objs[objid]

    def exists(self, objid: str) -> bool:
        return objid in self._objs

class FSObjectSource(ObjectSource):
    """
    an ObjectSource that reads objects from a directory on disk.  (See this module's documentation
    for the directory layout.)
    """
    RECORD_FILES = [ "object.json", "object.yml", "object.yaml" ]

    def __init__(self, rootdir, log=None):
        self.rootdir = Path(rootdir)
        if not self.rootdir.is_dir():
            raise PersistenceError(msg="Object source directory does not exist: "+str(rootdir))
        if not log:
            log = logging.getLogger(system.system_abbrev).getChild("objects")
        self.log = log

    def _objdir(self, objid):
        return self.rootdir / handle_to_filename(objid)

    def exists(self, objid: str) -> bool:
        return self._objdir(objid).is_dir()

    def _read_record(self, objid, objdir):
        for name in self.RECORD_FILES:
            recf = objdir / name
            if recf.is_file():
                with open(recf, encoding='utf-8') as fd:
                    if name.endswith(".json"):
                        return json.load(fd, object_pairs_hook=OrderedDict)
                    return yaml.safe_load(fd)
        raise PersistenceError(objid, "%s: object record file not found" % objid)

    def get(self, objid: str) -> DigitalObject:
        objdir = self._objdir(objid)
        if not objdir.is_dir():
            raise ObjectNotFound(objid)

        try:
            rec = self._read_record(objid, objdir)
            if not isinstance(rec, Mapping):
                raise PersistenceError(objid, "%s: object record is not a dictionary" % objid)

            bitstreams = []
            datadir = objdir / "data"
            if datadir.is_dir():
                for root, dirs, files in os.walk(datadir):
                    dirs.sort()
                    for f in sorted(files):
                        fpath = Path(root) / f
                        bitstreams.append(Bitstream(fpath.relative_to(datadir).as_posix(), str(fpath)))

            return DigitalObject(objid, rec.get("type", ITEM), rec.get("metadata"), bitstreams,
                                 rec.get("members"), rec.get("parent"), bool(rec.get("restricted")))

        except PermissionError as ex:
            raise AuthorizationError(objid, cause=ex)
        except (OSError, ValueError, TypeError, yaml.YAMLError) as ex:
            raise PersistenceError(objid, cause=ex)

def object_source_for(config: Mapping, log=None) -> ObjectSource:
    """
    instantiate the ObjectSource described by the given configuration.  The ``type`` parameter
    selects the kind of source; currently only ``fs`` (the default) is supported, which requires
    the ``dir`` parameter.
    """
    if not config:
        raise ConfigurationException("Missing required configuration: objects")
    stype = config.get('type', 'fs')
    if stype != 'fs':
        raise ConfigurationException("objects.type: unsupported object source type: "+str(stype))
    if not config.get('dir'):
        raise ConfigurationException("objects: missing required config parameter: dir")
    try:
        return FSObjectSource(config['dir'], log)
    except PersistenceError as ex:
        raise ConfigurationException("objects.dir: "+str(ex), cause=ex)
