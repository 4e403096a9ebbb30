"""
CLI Command Modules

The command-line caller of the plan facade: it detects the project
environment, collects option answers and renders the resulting plan.
"""

from grafter.cli import commands

__all__ = ['commands']
