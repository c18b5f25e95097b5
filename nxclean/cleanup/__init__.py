"""
Cleanup package for nxclean.
"""
