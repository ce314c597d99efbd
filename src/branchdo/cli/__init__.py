"""branchdo command-line interface."""
