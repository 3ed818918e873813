"""Allow running as ``python -m dwatcher``."""

from dwatcher.cli import main

main()
