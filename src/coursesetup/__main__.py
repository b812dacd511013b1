"""Allow ``python -m coursesetup``."""

from .cli import main

main()
