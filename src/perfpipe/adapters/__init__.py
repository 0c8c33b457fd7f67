"""Adapters binding the core ports to files, HTTP and logging."""
