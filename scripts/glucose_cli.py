#!/usr/bin/env python3
"""glukoscillator CLI launcher script.

This is a convenience script that can be run directly from the scripts directory.
The actual implementation is in glukoscillator.glucose_cli for proper package integration.

Usage:
    python scripts/glucose_cli.py <command> [options]

Or install the package and use:
    glukoscillator <command> [options]
    python -m glukoscillator.glucose_cli <command> [options]
"""

from glukoscillator.glucose_cli import main

if __name__ == "__main__":
    main()
