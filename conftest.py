"""Global pytest configuration."""

import os
import tempfile

# Keep the alias store out of the home directory before any imports
os.environ.setdefault(
    "ALIAS_STORE_PATH", os.path.join(tempfile.gettempdir(), "orderflow-test-aliases.json")
)
