"""
Tools for serializing bags into single archive files.

The serializers here produce reproducible output: serializing the same bag contents twice yields
byte-identical files.  File entries are written in sorted order with fixed timestamps and
permissions.  This allows a replica store to recognize an unchanged AIP by its checksum.
"""
import logging, os, zipfile, tarfile, gzip, io

from ..exceptions import PackingError, StateException
from ..utils.logging import blab
from .. import system as _sys

FIXED_ZIP_TIME = (1980, 1, 1, 0, 0, 0)
FILE_MODE = 0o644
DIR_MODE = 0o755

def _walk_sorted(bagdir):
    """
    iterate through the contents of a bag directory in a stable order, yielding pairs of
    (absolute path, archive name) where the archive name is rooted at the bag's name.
    """
    parent, name = os.path.split(os.path.abspath(bagdir))
    for root, dirs, files in os.walk(bagdir):
        dirs.sort()
        arcdir = os.path.relpath(root, parent).replace(os.sep, '/')
        yield (root, arcdir + '/')
        for f in sorted(files):
            yield (os.path.join(root, f), arcdir + '/' + f)

def _check_dirs(bagdir, destdir):
    if not os.path.isdir(bagdir):
        raise StateException("Can't serialize missing bag directory: "+bagdir)
    if not os.path.isdir(destdir):
        raise StateException("Can't serialize to missing destination directory: "+destdir)

def _remove_partial(destfile):
    if os.path.exists(destfile):
        try:
            os.remove(destfile)
        except OSError:
            pass

def zip_serialize(bagdir, destdir, log, destfile=None):
    """
    serialize a bag with zip

    :param bagdir   str:  path to the bag root directory to be serialized
    :param destdir  str:  path to the output directory to write serialized
                             file to.
    :param log   Logger:  a logger to write messages to
    :param destfile str:  the name to give to the serialized file.  If not
                             provided, one will be constructed from the
                             bag directory name (and an appropriate extension)
    """
    name = os.path.basename(bagdir.rstrip(os.sep))
    if not destfile:
        destfile = name+'.zip'
    destfile = os.path.join(destdir, destfile)
    _check_dirs(bagdir, destdir)

    log.info("serializing bag %s to %s", name, destfile)
    try:
        with zipfile.ZipFile(destfile, 'w', zipfile.ZIP_DEFLATED) as zf:
            for path, arcname in _walk_sorted(bagdir):
                info = zipfile.ZipInfo(arcname, FIXED_ZIP_TIME)
                if arcname.endswith('/'):
                    info.external_attr = ((0o40000 | DIR_MODE) << 16) | 0x10
                    zf.writestr(info, b'')
                else:
                    info.external_attr = (0o100000 | FILE_MODE) << 16
                    info.compress_type = zipfile.ZIP_DEFLATED
                    blab(log, "adding %s", arcname)
                    with open(path, 'rb') as fd, zf.open(info, 'w') as zfd:
                        while True:
                            buf = fd.read(1048576)
                            if not buf: break
                            zfd.write(buf)
    except OSError as ex:
        log.error("Failed to write zip file, %s: %s", destfile, str(ex))
        _remove_partial(destfile)
        raise PackingError("Bag serialization failure using zip: "+str(ex), name, ex, sys=_sys)

    return destfile

def tgz_serialize(bagdir, destdir, log, destfile=None):
    """
    serialize a bag as a gzip-compressed tar file

    :param bagdir   str:  path to the bag root directory to be serialized
    :param destdir  str:  path to the output directory to write serialized
                             file to.
    :param log   Logger:  a logger to write messages to
    :param destfile str:  the name to give to the serialized file.  If not
                             provided, one will be constructed from the
                             bag directory name (and an appropriate extension)
    """
    name = os.path.basename(bagdir.rstrip(os.sep))
    if not destfile:
        destfile = name+'.tgz'
    destfile = os.path.join(destdir, destfile)
    _check_dirs(bagdir, destdir)

    def _normalize(tinfo):
        tinfo.mtime = 0
        tinfo.uid = tinfo.gid = 0
        tinfo.uname = tinfo.gname = ""
        tinfo.mode = DIR_MODE if tinfo.isdir() else FILE_MODE
        return tinfo

    log.info("serializing bag %s to %s", name, destfile)
    try:
        with open(destfile, 'wb') as fd:
            # mtime=0 and no filename in the gzip header keep the output reproducible
            with gzip.GzipFile(filename='', mode='wb', fileobj=fd, mtime=0) as gz:
                with tarfile.open(fileobj=gz, mode='w', format=tarfile.PAX_FORMAT) as tf:
                    for path, arcname in _walk_sorted(bagdir):
                        blab(log, "adding %s", arcname)
                        tf.add(path, arcname.rstrip('/'), recursive=False, filter=_normalize)
    except (OSError, tarfile.TarError) as ex:
        log.error("Failed to write tar file, %s: %s", destfile, str(ex))
        _remove_partial(destfile)
        raise PackingError("Bag serialization failure using tar: "+str(ex), name, ex, sys=_sys)

    return destfile

class Serializer(object):
    """
    a class that serialize a bag using the archiving technique identified
    by a given name.
    """

    def __init__(self, typefunc=None, log=None):
        self._map = {}
        if typefunc:
            self._map.update(typefunc)
        self.log = log

    @property
    def formats(self):
        """
        a list of the names of formats supported by this serializer
        """
        return list(self._map.keys())

    def extension_for(self, format):
        """
        return the filename extension (without the dot) used for files of the given format
        """
        if format not in self._map:
            raise PackingError("Serialization format not supported: "+str(format))
        return self._map[format][1]

    def register(self, format, serfunc, ext=None):
        """
        register a serialization function to make available via this serializer.
        The provided function must take 4 arguments:
          bagdir -- the root directory of the bag to serialize
          destdir -- the directory to write the output bagfile to
          log -- a logger object to send messages to.
          destfile -- the name of the output file

        :param format str:   the name users can use to select the serialization
                             format.
        :param serfunc func:  the serializaiton function to associate with this
                           name.
        :param ext     str:  the filename extension for output files (default: the format name)
        """
        if not callable(serfunc):
            raise TypeError("Serializer.register(): serfunc is not a function: "+
                            str(serfunc))
        self._map[format] = (serfunc, ext or format)

    def serialize(self, bagdir, destdir, format, log=None, destfile=None):
        """
        serialize a bag using the named serialization format
        """
        if format not in self._map:
            raise PackingError("Serialization format not supported: "+
                               str(format))
        if not log:
            if self.log:
                log = self.log
            else:
                log = logging.getLogger(_sys.system_abbrev).getChild("pack")

        return self._map[format][0](bagdir, destdir, log, destfile)

class DefaultSerializer(Serializer):
    """
    a Serializer configured for some default serialization formats: zip, tgz.
    """

    def __init__(self, log=None):
        super(DefaultSerializer, self).__init__({
            "zip": (zip_serialize, "zip"),
            "tgz": (tgz_serialize, "tgz")
        }, log)
