"""Repository-root ASGI entry for the RailOps backend.

Puts ``backend/`` on the import path so the server can be started from the
checkout without installing the package:

  uvicorn asgi:app --reload

"""
import os
import sys

BACKEND_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "backend")
if BACKEND_PATH not in sys.path:
    sys.path.insert(0, BACKEND_PATH)

from railops.main import app  # noqa: E402,F401
