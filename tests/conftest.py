import os

# The web app opens its store at import time; keep it in memory for tests
os.environ.setdefault("CHARGE_DATABASE_URL", "sqlite://")
