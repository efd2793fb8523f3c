"""Shared Freight Billing packages.

This namespace exposes helper modules that can be imported by the web
application as well as scripts and background jobs. Individual packages
should keep their public API small and free of persistence concerns.
"""
