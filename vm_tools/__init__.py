"""VM Tools: manage libvirt virtual machines from the command line."""

__version__ = "0.1.0"
