"""
module supporting a command-line interface to replication operations, built on the command suite 
infrastructure in :py:mod:`replicate.utils.cli`.

EXIT STATUS

Commands built into this cli infrastructure follow the following conventions for exit status codes:

  0 - normal successful completion
  1 - one or more objects could not be processed successfully (or processing was suspended)
  2 - an error was found in the option or argument values, preventing proper parsing or interpretation
  6 - if a configuration error was detected

The value 200 is returned if any unexpected, uncaught exception bubbles to the top of the execution 
stack.  
"""
