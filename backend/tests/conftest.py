import os
import sys
import tempfile
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Must be set before config.settings is first imported.
_TEST_DATA_DIR = tempfile.mkdtemp(prefix="coach-tests-")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATA_DIR", _TEST_DATA_DIR)
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TEST_DATA_DIR}/coach-test.db")
os.environ.setdefault("BASE_PATH", "/usr/417")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
