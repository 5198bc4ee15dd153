import os
import sys
import tempfile

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

# Point the module-level store at a throwaway database before app modules import it.
os.environ.setdefault("PAWPALS_DB_PATH", os.path.join(tempfile.mkdtemp(prefix="pawpals-tests-"), "pawpals.sqlite3"))
os.environ.pop("MAPBOX_TOKEN", None)
