"""
Command line interface for the WireGuard router configuration manager.
"""
