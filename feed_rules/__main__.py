"""Main module for the feed_rules command line.

This module allows the CLI to be run as a Python module using:
python -m feed_rules
"""

from feed_rules.cli import main

if __name__ == "__main__":
    main()
