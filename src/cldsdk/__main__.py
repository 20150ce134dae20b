"""
cldsdk CLI entry point.

Usage:
    python -m cldsdk url sample.jpg -o width=100
    python -m cldsdk upload logo.png
"""

from cldsdk.cli import main

if __name__ == "__main__":
    main()
