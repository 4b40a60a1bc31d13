"""
Entry point for running ptsd as a module.

Allows running as: python -m ptsd
"""

from ptsd.cli import cli_main

if __name__ == "__main__":
    cli_main()
