"""
nxclean - Retention and cleanup job for Nexus Repository Manager.

This package contains the rule engine that decides which components are
eligible for removal, the REST connector for the repository manager, the
traversal-and-deletion pipeline and its reporting layer.
"""

__version__ = "0.1.0"
__author__ = "Taamir Ransome"
__email__ = "taamir@example.com"
