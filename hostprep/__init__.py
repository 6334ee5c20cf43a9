"""hostprep — detect the host platform and provision an application environment."""

__version__ = "0.1.0"
