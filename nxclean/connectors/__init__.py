"""
Connectors package for nxclean.

This package contains the catalog client interface and the Nexus Repository
Manager REST implementation.
"""
