"""Global pytest configuration."""

import os

# Keep tests on in-memory stores regardless of the developer's environment
os.environ.pop("DATABASE_URL", None)
os.environ.pop("REDIS_URL", None)
