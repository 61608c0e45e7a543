"""Test configuration for shared module tests."""

import os
import sys
from pathlib import Path

SHARED_DIR = Path(__file__).resolve().parents[1]
SERVICES_DIR = SHARED_DIR.parent

# ``shared`` is imported as a top-level package from services/
services_path = str(SERVICES_DIR)
if services_path not in sys.path:
    sys.path.insert(0, services_path)

# No real Redis during tests
os.environ["REDIS_URL"] = ""
