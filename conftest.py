"""Make ``doggy_watch`` importable when pytest runs from a source checkout."""

import sys
from pathlib import Path

ROOT_DIR = str(Path(__file__).resolve().parent)
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)
