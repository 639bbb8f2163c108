"""wsupdate: keep every project checkout in a workspace up to date."""

__version__ = "1.0.0"
