"""Release version orchestrator: bump descriptors, verify, tag and push."""

__version__ = "0.1.0"
