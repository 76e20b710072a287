"""
utils/ - Shared helpers
=======================
Logging setup and text parsing helpers used across every layer.
"""
