"""
dropbin

Ephemeral content store: time-limited file and paste sharing backed by a
blob store, a metadata store and a background expiration reaper.
"""

__version__ = "1.0.0"
