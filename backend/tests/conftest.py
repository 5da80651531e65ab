import os
import sys

# in-memory database and no AI key before anything imports the settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["GEMINI_API_KEY"] = ""


def _ensure_backend_root_on_path() -> None:
    tests_dir = os.path.dirname(__file__)
    backend_root = os.path.abspath(os.path.join(tests_dir, ".."))
    if backend_root not in sys.path:
        sys.path.insert(0, backend_root)


_ensure_backend_root_on_path()
