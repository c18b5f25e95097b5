"""
Rules package for nxclean.

This package contains the rule model, the YAML rules loader, age expression
resolution and the compiled matcher used by the cleanup pipeline.
"""

from .models import CleanupAction, CleanupFilters, CleanupRule, CleanupRuleSet
from .matcher import ComponentMatcher, CompiledRuleSet, RepositoryGate, compile_rules
from .parser import CleanupRuleParser

__all__ = [
    'CleanupAction',
    'CleanupFilters',
    'CleanupRule',
    'CleanupRuleSet',
    'CleanupRuleParser',
    'ComponentMatcher',
    'CompiledRuleSet',
    'RepositoryGate',
    'compile_rules',
]
