"""
CLI Module - Command-line interface for the Progress Reconciliation Engine.

Provides commands for:
- Period progress reports
- Completion lookahead
- Revenue forecast
- Reconciliation diagnostics
"""

from .commands import cli

__all__ = ['cli']
