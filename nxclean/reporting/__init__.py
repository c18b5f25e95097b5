"""
Reporting package for nxclean.

Summary accumulators, console tables and CSV/JSON report files.
"""
