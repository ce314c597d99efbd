"""branchdo — to-do lists and time tracking attached to git branches."""

__version__ = "0.4.0"
