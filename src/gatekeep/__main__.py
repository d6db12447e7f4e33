"""Entry point for 'python -m gatekeep' command.

This module allows the Gatekeep CLI to be invoked using
'python -m gatekeep'.
"""

from gatekeep.cli import main

if __name__ == "__main__":
    main()
