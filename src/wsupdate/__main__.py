"""Allow ``python -m wsupdate``."""

from wsupdate.cli import main

main()
