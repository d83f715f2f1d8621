"""Video Library Renditions - streaming renditions for a personal video library."""

__version__ = "0.1.0"
