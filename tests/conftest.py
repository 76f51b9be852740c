import os

# unit tests never send traces
os.environ.setdefault("OPIK_TRACK_DISABLE", "true")
