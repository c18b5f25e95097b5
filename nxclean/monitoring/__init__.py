"""
Monitoring package for nxclean.

Prometheus metrics of cleanup runs.
"""
