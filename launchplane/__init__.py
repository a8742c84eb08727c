"""launchplane — a local control plane for launchd services and system extensions."""

__version__ = "0.1.0"
