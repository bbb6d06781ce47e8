"""
replicate command-line program for executing replication operations.
"""
import os, sys, logging

from replicate.utils import cli
from replicate.exceptions import ConfigurationException
from replicate.cli import transmit

description = "execute AIP replication operations"
epilog = None
default_prog_name = "replicate"
default_conf_file = os.environ.get('REPLICATE_CONFIG', "/etc/replicate/replicate.yml")

def main(cmdname, args):
    """
    a function that executes the ``replicate`` command-line tool.  
    """
    if not cmdname:
        cmdname = default_prog_name

    # set up the commands
    argparser = cli.define_prog_opts(cmdname, description, epilog)
    repl = cli.CLISuite(cmdname, default_conf_file, argparser)
    repl.load_subcommand(transmit)

    # execute the commands
    return repl.execute(args)

def run():
    """
    execute the ``replicate`` program using ``sys.argv`` and exit with an appropriate status
    """
    prog = os.path.splitext(os.path.basename(sys.argv[0]))[0] or default_prog_name
    try:
        main(prog, sys.argv[1:])
        sys.exit(0)
    except cli.CommandFailure as ex:
        logging.getLogger(f"{prog} {ex.cmd}").critical(str(ex))
        sys.exit(ex.stat)
    except ConfigurationException as ex:
        logging.getLogger(prog).critical("Config error: "+str(ex))
        sys.exit(6)
    except Exception as ex:
        logging.getLogger(prog).exception(ex)
        sys.exit(200)

if __name__ == "__main__":
    run()
