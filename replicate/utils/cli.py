"""
support for building the ``replicate`` command-line program out of subcommand modules.

A subcommand is provided by a module (or object) with the following attributes:

``default_name``
    the name used to invoke the subcommand when none is given at load time
``help``
    a one-line summary shown in the program's usage listing
``description``
    (optional) the longer text shown by ``replicate CMD -h``
``load_into(parser, dests, cmdname)``
    a function that adds the subcommand's arguments to ``parser``
``execute(args, config, log)``
    a function that carries out the subcommand, raising :py:class:`CommandFailure` on error
"""
import os, logging
from argparse import ArgumentParser, HelpFormatter

from ..exceptions import StateException, ConfigurationException
from .. import config as cfgmod

class _ParaHelpFormatter(HelpFormatter):
    # wrap each blank-line-separated paragraph separately
    def _fill_text(self, text, width, indent):
        return "\n\n".join(super(_ParaHelpFormatter, self)._fill_text(p, width, indent)
                           for p in text.split("\n\n"))

def define_prog_opts(progname, description=None, epilog=None, parser=None):
    """
    add the options common to all ``replicate`` subcommands to an argument parser.

    :param str progname:    the program name shown in usage messages
    :param str description: text shown before the option descriptions
    :param str epilog:      text shown after the option descriptions
    :param ArgumentParser parser:  the parser to add the options to; if not given, a new one
                            is created
    :return:  the configured parser
    """
    if not parser:
        parser = ArgumentParser(progname, None, description, epilog,
                                formatter_class=_ParaHelpFormatter)

    cmdhelp = "Use '%(prog)s CMD -h' to get help on a particular CMD."
    parser.epilog = cmdhelp + ("\n\n"+parser.epilog if parser.epilog else "")

    parser.add_argument("-w", "--workdir", type=str, dest='workdir', metavar='DIR', default="",
                        help="use DIR as the working directory, where relative log and output "+
                             "paths are resolved; default: the current directory")
    parser.add_argument("-c", "--config", type=str, dest='conf', metavar='FILE',
                        help="load the configuration from FILE")
    parser.add_argument("-l", "--logfile", type=str, dest='logfile', metavar='FILE',
                        help="write log messages to FILE in place of the configured log file")
    parser.add_argument("-q", "--quiet", action="store_true", dest='quiet',
                        help="suppress messages to standard error")
    parser.add_argument("-D", "--debug", action="store_true", dest='debug',
                        help="include DEBUG messages in the log file")
    parser.add_argument("-v", "--verbose", action="store_true", dest='verbose',
                        help="also show NORMAL (and, with -D, DEBUG) messages on standard error")
    return parser

class CommandFailure(Exception):
    """
    raised when a subcommand cannot complete; the program should exit with the status given by
    the ``stat`` attribute.  These statuses are used:

      * 1:  one or more objects could not be processed
      * 2:  bad command-line options or arguments
      * 6:  a configuration error
      * 200 (set by the program itself): an unexpected error
    """

    def __init__(self, cmdname, message, exstat=1, cause=None):
        """
        :param str cmdname:   the name of the subcommand that failed
        :param str message:   what went wrong; if empty, the message from ``cause`` is used
        :param int exstat:    the exit status the program should return
        :param Exception cause:  the error that led to this failure, if any
        """
        if not message:
            message = str(cause) if cause else "Unknown command failure"
        super(CommandFailure, self).__init__(message)
        self.stat = exstat
        self.cmd = cmdname
        self.cause = cause

class CLISuite(object):
    """
    the ``replicate`` program: a parser for the common options plus a set of loaded subcommands.
    """

    def __init__(self, progname, defconffile=None, parser=None):
        """
        :param str progname:     the program's name, as used in usage and log messages
        :param str defconffile:  the configuration file to load when ``--config`` is not given
        :param ArgumentParser parser:  a parser already set up via :py:func:`define_prog_opts`
        """
        self.suitename = progname
        self._defconffile = defconffile
        self.parser = parser or define_prog_opts(progname)
        self._dests = set(a.dest for a in self.parser._actions)
        self._subparser_src = self.parser.add_subparsers(title="commands", dest="cmd")
        self._cmds = {}

    def parse_args(self, args):
        return self.parser.parse_args(args)

    def load_subcommand(self, cmdmod, cmdname=None):
        """
        make a subcommand available to this program.
        :param module|object cmdmod:  the subcommand (see this module's documentation)
        :param str cmdname:  the name to invoke it by; defaults to ``cmdmod.default_name``
        """
        if not hasattr(cmdmod, "load_into"):
            raise StateException("Not a subcommand (no load_into()): " + repr(cmdmod))
        cmdname = cmdname or cmdmod.default_name

        subparser = self._subparser_src.add_parser(cmdname, help=cmdmod.help,
                                                   description=getattr(cmdmod, 'description', None),
                                                   formatter_class=_ParaHelpFormatter)
        cmd = cmdmod.load_into(subparser, self._dests, cmdname) or cmdmod
        self._dests.update(a.dest for a in subparser._actions)
        self._cmds[cmdname] = cmd

    def configure_log(self, args, config):
        """
        send log messages to the log file (and, unless ``--quiet``, to standard error) as
        directed by the options and the configuration.  The ``logfile`` and ``logdir`` defaults
        are filled into ``config``.
        :return:  the program's Logger
        """
        workdir = config.get('working_dir', os.getcwd())
        if args.logfile:
            config['logfile'] = os.path.join(workdir, args.logfile)
        else:
            config.setdefault('logfile', self.suitename + ".log")
        config.setdefault('logdir', workdir)

        errlevel = logging.INFO
        errformat = self.suitename + " %(levelname)s: %(message)s"
        if args.verbose:
            errlevel = logging.DEBUG if args.debug else cfgmod.NORMAL
            errformat = "%(name)s %(levelname)s: %(message)s"
        cfgmod.configure_log(level=logging.DEBUG if args.debug else cfgmod.NORMAL, config=config,
                             addstderr=not args.quiet, stderrlevel=errlevel, stderrformat=errformat)

        log = logging.getLogger("cli."+self.suitename)
        log.setLevel(cfgmod.NORMAL)
        if args.verbose:
            log.info("Log file: %s", cfgmod.global_logfile)
        return log

    def load_config(self, args):
        """
        return the configuration named by ``--config``, or else the default configuration file
        (if it exists), or else an empty dictionary.
        """
        if args.conf:
            return cfgmod.load_from_file(args.conf)
        if self._defconffile and os.path.isfile(self._defconffile):
            return cfgmod.load_from_file(self._defconffile)
        return {}

    def execute(self, args, config=None):
        """
        run the subcommand named in the arguments.

        :param list|Namespace args:  the command-line arguments (after the program name), either
                                     as a list of strings or already parsed
        :param dict config:  the configuration to use in place of the one named by the options
        :return:  whatever the subcommand returns
        :raises CommandFailure:  if the subcommand fails or the options or configuration are bad
        """
        argv = None
        if isinstance(args, list):
            argv = args
            args = self.parse_args(args)
        cmd = self._cmds.get(args.cmd)
        if cmd is None:
            raise CommandFailure(args.cmd, "Unrecognized command: "+str(args.cmd), 2)

        try:
            if config is None:
                config = self.load_config(args)
        except ConfigurationException as ex:
            raise CommandFailure(args.cmd, "Configuration error: "+str(ex), 6, ex)

        if args.workdir:
            args.workdir = os.path.abspath(args.workdir)
            if not os.path.isdir(args.workdir):
                raise CommandFailure(args.cmd, "Working dir is not an existing directory: "+args.workdir, 2)
            config['working_dir'] = args.workdir
        else:
            config['working_dir'] = os.path.abspath(config.get('working_dir', os.getcwd()))

        proglog = self.configure_log(args, config)
        if argv:
            proglog.log(cfgmod.NORMAL, "Executing: %s %s", self.suitename, " ".join(argv))

        try:
            return cmd.execute(args, config, proglog.getChild(args.cmd))
        except CommandFailure as ex:
            ex.cmd = (args.cmd + " " + ex.cmd) if ex.cmd else args.cmd
            raise
        except ConfigurationException as ex:
            raise CommandFailure(args.cmd, "Configuration error: "+str(ex), 6, ex)
