#!/usr/bin/env python3
"""
Tilemark - tiled text watermarks for whole folders of images.
Launches the desktop window; use ``tilemark`` (tilemark/cli.py) for headless batches.
"""

from tilemark_gui.gui import main

if __name__ == "__main__":
    main()
