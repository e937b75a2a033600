"""rpmresolve Main

This specifies the entrypoint of the rpmresolve module when run as executable.
"""

import sys

from rpmresolve.main_cli import rpmresolve_cli as main

if __name__ == "__main__":
    r = main()
    sys.exit(r)
