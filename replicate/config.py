"""
Utilities for loading configuration data and setting up logging for the replication system.

Configuration is held as a (nested) dictionary, normally read from a YAML or JSON file.  Some
parameters are traditionally referred to by dotted property names (e.g. ``replicate.group.aip.name``);
:py:func:`lookup` resolves such names against the nested dictionary.
"""
import os, sys, logging, json, copy
from collections.abc import Mapping
from urllib.parse import urlparse

import yaml

from .exceptions import ConfigurationException

__all__ = [ 'load_from_file', 'resolve_configuration', 'merge_config', 'lookup', 'configure_log',
            'NORMAL', 'LOG_FORMAT', 'ConfigurationException' ]

NORMAL = 15
logging.addLevelName(NORMAL, "NORMAL")

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"
_log_handler = None
_stderr_handler = None
global_logdir = None
global_logfile = None

def load_from_file(configfile: str) -> Mapping:
    """
    read the configuration from the given file and return it as a dictionary.
    The file format is determined from the file's extension: ``.json`` files are
    read as JSON; all others are read as YAML.

    :raises ConfigurationException:  if the file cannot be read or parsed
    """
    try:
        with open(configfile) as fd:
            if configfile.endswith('.json'):
                out = json.load(fd)
            else:
                out = yaml.safe_load(fd)
    except OSError as ex:
        raise ConfigurationException("Unable to read config file, %s: %s" % (configfile, str(ex)),
                                     cause=ex)
    except (ValueError, yaml.YAMLError) as ex:
        raise ConfigurationException("Unable to parse config file, %s: %s" % (configfile, str(ex)),
                                     cause=ex)

    if out is None:
        out = {}
    if not isinstance(out, Mapping):
        raise ConfigurationException("%s: config data is not a dictionary" % configfile)
    return out

def resolve_configuration(location: str) -> Mapping:
    """
    return the configuration data found at the given location.  The location can either
    be a file path or a ``file:`` URL.
    """
    purl = urlparse(location)
    if not purl.scheme or purl.scheme == "file":
        return load_from_file(purl.path if purl.scheme else location)
    raise ConfigurationException("Unsupported config location scheme: " + purl.scheme)

def merge_config(primary: Mapping, defconf: Mapping) -> Mapping:
    """
    merge two configurations, with the values in ``primary`` overriding those in ``defconf``.
    Nested dictionaries are merged recursively.  Neither input is modified.
    """
    out = copy.deepcopy(defconf)
    for key in primary:
        if key in out and isinstance(out[key], Mapping) and isinstance(primary[key], Mapping):
            out[key] = merge_config(primary[key], out[key])
        else:
            out[key] = copy.deepcopy(primary[key])
    return out

def lookup(config: Mapping, propname: str, default=None):
    """
    look up a configuration parameter by a dotted property name.  The name is first looked for
    as a literal key in ``config``; failing that, each dot-delimited field is treated as a key
    into a nested dictionary.

    :param dict config:    the configuration data
    :param str  propname:  the property name (e.g. ``replicate.group.aip.name``)
    :param      default:   the value to return if the property is not set
    """
    if not config:
        return default
    if propname in config:
        return config[propname]

    node = config
    for field in propname.split('.'):
        if not isinstance(node, Mapping) or field not in node:
            return default
        node = node[field]
    return node

def configure_log(logfile: str=None, level: int=None, format: str=None, config: Mapping=None,
                  addstderr: bool=False, stderrlevel: int=None, stderrformat: str=None):
    """
    configure the root log to send messages to a file.

    :param str logfile:  the path to the log file; if relative, it is taken relative to the
                         ``logdir`` configuration parameter (or ``working_dir``, if not set).
                         If not provided, the ``logfile`` configuration parameter is used.
    :param int   level:  the logging level; defaults to the ``loglevel`` parameter or NORMAL.
    :param str  format:  the message format to use
    :param dict config:  the configuration data
    :param bool addstderr:  if True, also send messages to standard error; a handler added by an
                            earlier call is replaced either way
    :param int stderrlevel:  the level for messages sent to standard error; defaults to ``level``
    :param str stderrformat: the format for messages sent to standard error; defaults to ``format``
    """
    global _log_handler, _stderr_handler, global_logdir, global_logfile
    if not config:
        config = {}
    if not logfile:
        logfile = config.get('logfile', 'replicate.log')

    if not os.path.isabs(logfile):
        logdir = config.get('logdir', config.get('working_dir', os.getcwd()))
        logfile = os.path.join(logdir, logfile)
    global_logdir = os.path.dirname(logfile)
    global_logfile = logfile

    if level is None:
        level = config.get('loglevel', NORMAL)
    if not format:
        format = config.get('logformat', LOG_FORMAT)

    rootlog = logging.getLogger()
    if _log_handler:
        rootlog.removeHandler(_log_handler)
        _log_handler.close()
    _log_handler = logging.FileHandler(logfile)
    _log_handler.setLevel(level)
    _log_handler.setFormatter(logging.Formatter(format))
    rootlog.addHandler(_log_handler)
    if rootlog.level == logging.NOTSET or rootlog.level > level:
        rootlog.setLevel(level)

    if _stderr_handler:
        rootlog.removeHandler(_stderr_handler)
        _stderr_handler = None
    if addstderr:
        _stderr_handler = logging.StreamHandler(sys.stderr)
        _stderr_handler.setLevel(level if stderrlevel is None else stderrlevel)
        _stderr_handler.setFormatter(logging.Formatter(stderrformat or format))
        rootlog.addHandler(_stderr_handler)
