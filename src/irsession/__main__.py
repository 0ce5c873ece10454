"""Allow ``python -m irsession``."""

from irsession.app import main

main()
