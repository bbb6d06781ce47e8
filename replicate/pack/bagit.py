"""
Packers that produce AIPs as serialized BagIt bags.

The bag for an object is named after the object's handle (see
:py:func:`~replicate.objects.handle_to_filename`) and has the following layout:

    bagit.txt
    bag-info.txt
    manifest-sha256.txt
    data/metadata.json     -- a description of the object (see DigitalObject.to_dict())
    data/members.json      -- containers only: the handles of the member objects
    data/content/...       -- the object's bitstreams

Bag metadata carries no creation dates: repacking an unchanged object reproduces the same
AIP bytes.
"""
import os, json, shutil, tempfile
from collections import OrderedDict
from pathlib import Path

from ..exceptions import AuthorizationError, PersistenceError, PackingError
from ..objects import handle_to_filename
from ..utils.logging import blab
from ..utils.datamgmt import checksum_of
from . import Packer, Artifact
from .serialize import DefaultSerializer

BAGIT_VERSION = "1.0"
_serializer = DefaultSerializer()

def _write_json(data, path):
    with open(path, 'w', encoding='utf-8') as fd:
        json.dump(data, fd, indent=2, separators=(',', ': '))
        fd.write('\n')

class BagItPacker(Packer):
    """
    a Packer that writes an object, its metadata and its bitstreams, into a BagIt bag and then
    serializes the bag into a single file (according to the ``format`` configuration parameter).
    """

    def pack(self, location) -> Artifact:
        location = Path(location)
        if not location.parent.is_dir():
            raise PackingError("Staging directory does not exist: "+str(location.parent),
                               location.name)

        obj = self.load_object()
        if obj.restricted:
            raise AuthorizationError(obj.id, "Object is restricted from replication: "+obj.id)

        tmpdir = tempfile.mkdtemp(prefix="_bag.", dir=str(location.parent))
        try:
            bagdir = os.path.join(tmpdir, handle_to_filename(obj.id))
            os.mkdir(bagdir)
            self.fill_bag(obj, bagdir)
            _serializer.serialize(bagdir, str(location.parent), self.format, self.log, location.name)
        finally:
            shutil.rmtree(tmpdir, ignore_errors=True)

        out = Artifact(location)
        self.log.debug("Packed %s into %s (%d bytes)", obj.id, out.name, out.length)
        return out

    def fill_bag(self, obj, bagdir):
        """
        write the contents of the bag for the given object into the given directory
        """
        datadir = os.path.join(bagdir, "data")
        os.mkdir(datadir)
        manifest = OrderedDict()
        self.fill_payload(obj, datadir, manifest)

        nbytes = 0
        for f in manifest:
            nbytes += os.stat(os.path.join(bagdir, f)).st_size

        with open(os.path.join(bagdir, "bagit.txt"), 'w', encoding='utf-8') as fd:
            fd.write("BagIt-Version: %s\nTag-File-Character-Encoding: UTF-8\n" % BAGIT_VERSION)
        with open(os.path.join(bagdir, "manifest-sha256.txt"), 'w', encoding='utf-8') as fd:
            for f in sorted(manifest):
                fd.write("%s  %s\n" % (manifest[f], f))
        with open(os.path.join(bagdir, "bag-info.txt"), 'w', encoding='utf-8') as fd:
            fd.write("External-Identifier: %s\n" % obj.id)
            fd.write("Object-Type: %s\n" % obj.type)
            if obj.parent:
                fd.write("Is-Part-Of: %s\n" % obj.parent)
            fd.write("Payload-Oxum: %d.%d\n" % (nbytes, len(manifest)))

    def fill_payload(self, obj, datadir, manifest):
        """
        write the payload files of the bag into its data directory, recording each file's
        checksum in the given manifest dictionary (keyed by the bag-relative path).
        """
        mdfile = os.path.join(datadir, "metadata.json")
        _write_json(obj.to_dict(), mdfile)
        manifest["data/metadata.json"] = checksum_of(mdfile)

        if obj.is_container:
            memfile = os.path.join(datadir, "members.json")
            _write_json(obj.members, memfile)
            manifest["data/members.json"] = checksum_of(memfile)

        for bs in obj.bitstreams:
            dest = os.path.join(datadir, "content", *bs.name.split('/'))
            os.makedirs(os.path.dirname(dest), exist_ok=True)
            try:
                if bs.content is not None:
                    with open(dest, 'wb') as fd:
                        fd.write(bs.content)
                else:
                    shutil.copyfile(bs.path, dest)
            except PermissionError as ex:
                raise AuthorizationError(obj.id, "Not authorized to read bitstream %s of %s" %
                                         (bs.name, obj.id), cause=ex)
            except OSError as ex:
                raise PersistenceError(obj.id, "Unable to read bitstream %s of %s: %s" %
                                       (bs.name, obj.id, str(ex)), cause=ex)
            blab(self.log, "added bitstream %s", bs.name)
            manifest["data/content/"+bs.name] = checksum_of(dest)

class CatalogPacker(BagItPacker):
    """
    a Packer that, for container objects (collections and communities), writes only a catalog of
    the container: its metadata and the list of its members; bitstreams attached to the container
    (e.g. logos) are not included.  Items are packed exactly as with the :py:class:`BagItPacker`.
    """

    def fill_payload(self, obj, datadir, manifest):
        if not obj.is_container:
            return super(CatalogPacker, self).fill_payload(obj, datadir, manifest)

        catalog = OrderedDict([
            ("id", obj.id),
            ("type", obj.type),
            ("parent", obj.parent),
            ("metadata", obj.metadata),
            ("members", obj.members)
        ])
        catfile = os.path.join(datadir, "catalog.json")
        _write_json(catalog, catfile)
        manifest["data/catalog.json"] = checksum_of(catfile)
