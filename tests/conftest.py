import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from tests.support import configure_test_env  # noqa: E402

# Apply the offline test settings before any test module imports cvmatch,
# since settings are read once at first import.
configure_test_env()
