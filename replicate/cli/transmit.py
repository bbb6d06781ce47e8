"""
CLI command that creates AIPs for digital objects and transmits them to the configured replica store.
See :py:mod:`replicate.cli` and the :program:`replicate` script for info on the general CLI infrastructure.
"""
import logging, argparse, sys
from copy import deepcopy

from replicate.exceptions import ConfigurationException
from replicate.utils.cli import CommandFailure
from replicate.config import merge_config
from replicate.objects import object_source_for
from replicate.curate import Curator, Invoked, Status
from replicate.transmit import TransmitAIP, TransmitSingleAIP, from_config

default_name = "transmit"
help = "create AIPs for digital objects and transmit them to the replica store"
description = """
  Create an AIP for each of the given objects and send it to the replica store.  An AIP is not
  sent if the store already holds an identical copy.  Unless --single is given, the members of
  collections and communities are transmitted as well.

  One line is printed per object processed, giving the resulting status and a description of the
  outcome.  The command exits with a non-zero status if any object could not be transmitted.
"""

def load_into(subparser, current_dests=None, as_cmd=None):
    """
    load this command into a CLI by defining the command's arguments and options.
    :param argparser.ArgumentParser subparser:  the argument parser instance to define this command's
                                                interface into it
    :rtype: None
    """
    p = subparser
    p.description = description
    p.add_argument("ids", metavar="ID", type=str, nargs="+",
                   help="the identifier (handle) of an object to transmit")
    p.add_argument("-g", "--group", metavar="NAME", type=str, dest="group",
                   help="transmit into the store group NAME, overriding replicate.group.aip.name")
    p.add_argument("-s", "--skip", metavar="IDS", type=str, dest="skiplist",
                   help="a comma-separated list of identifiers not to transmit, overriding "+
                        "replicate.transmitaip.skiplist")
    p.add_argument("-S", "--single", action="store_true", dest="single",
                   help="do not transmit the members of container objects")
    p.add_argument("-j", "--workers", metavar="N", type=int, dest="workers",
                   help="transmit up to N objects in parallel")
    p.add_argument("-B", "--batch", action="store_const", dest="invoked", const=Invoked.BATCH,
                   default=None,
                   help="run as an unattended batch: do not stop at the first failure")
    return None

def _apply_args(args, config):
    config = deepcopy(config)
    overrides = {}
    if args.group:
        overrides = merge_config({ "replicate": { "group": { "aip": { "name": args.group } } } },
                                 overrides)
    if args.skiplist is not None:
        overrides = merge_config({ "replicate": { "transmitaip": { "skiplist": args.skiplist } } },
                                 overrides)
    if overrides:
        config = merge_config(overrides, config)
    return config

def execute(args, config=None, log=None):
    """
    execute this command: transmit AIPs for the objects named in the arguments
    """
    cmd = default_name
    if not log:
        log = logging.getLogger(cmd)
    if config is None:
        config = {}

    if isinstance(args, list):
        # cmd-line arguments not parsed yet
        p = argparse.ArgumentParser()
        load_into(p)
        args = p.parse_args(args)

    config = _apply_args(args, config)
    curcfg = config.get('curate', {})
    invoked = args.invoked
    if not invoked:
        try:
            invoked = Invoked(curcfg.get('invoked', Invoked.INTERACTIVE.value))
        except ValueError as ex:
            raise ConfigurationException("curate.invoked: "+str(ex), cause=ex)
    workers = args.workers or curcfg.get('workers', 1)

    objects = object_source_for(config.get('objects'))
    pipeline = from_config(config, objects, log)
    task = TransmitSingleAIP(pipeline) if args.single else TransmitAIP(pipeline)

    curator = Curator(config, invoked, workers, objects, log.info, log)
    curator.add_task(task, cmd)
    run = curator.curate(args.ids)

    for res in run.results:
        print("%s %s: %s" % (res.status.name, res.objid, res.result or ""))

    if run.suspended:
        raise CommandFailure(cmd, "Transmission suspended after failure on %s" %
                             (run.suspended_by and run.suspended_by.objid), 1)
    if run.failed:
        nfailed = len([r for r in run.results if r.failed or r.status == Status.UNSET])
        raise CommandFailure(cmd, "%d object(s) failed to transmit" % nfailed, 1)

    log.info("Processed %d object(s)", len(run.results))
    return run
