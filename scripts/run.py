#!/usr/bin/env python3
"""
Runner script for image-stream-gang.
This makes it easy to run the tool from a checkout: uv run python scripts/run.py <args>
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))
from image_stream_gang.cli import main

if __name__ == "__main__":
    sys.exit(main())
