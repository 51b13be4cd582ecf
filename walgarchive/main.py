#!/usr/bin/env python3
"""
Main entry point for the walg-archive CLI.

Delegates to walgarchive.ui.cli to keep the console script mapping stable.
"""

from walgarchive.ui.cli import run as walg_archive


if __name__ == "__main__":
    walg_archive()
