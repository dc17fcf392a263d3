"""blueshift: blue-green deployments across platform foundations."""

__version__ = "0.1.0"
