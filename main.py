#!/usr/bin/env python3
"""
main.py: quick-start entry point.

    python main.py generate target.jpg tiles/ -o output/

Or use the full CLI:

    python -m mosaic_zoom.cli generate --help
    python -m mosaic_zoom.cli analyze target.jpg
"""

from mosaic_zoom.cli import app

if __name__ == "__main__":
    app()
