"""
Configuration files for the WireGuard router configuration manager.
"""
