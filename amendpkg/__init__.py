"""amendpkg — patch package.json manifests and revert the patches exactly."""

__version__ = "0.3.0"
