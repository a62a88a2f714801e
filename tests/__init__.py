import os

# Settings are cached on first use; select the testing profile before any import
os.environ.setdefault("ENVIRONMENT", "testing")
