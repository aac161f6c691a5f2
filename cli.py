#!/usr/bin/env python3
"""
CLI for the Progress Reconciliation and Forecasting Engine.

Usage:
    python cli.py report snapshot.json --project P100 --period 2025-W02
    python cli.py lookahead snapshot.json --today 2025-01-15
    python cli.py forecast snapshot.json --period-type months --count 3
    python cli.py diagnose snapshot.json
    python cli.py periods --granularity monthly

Commands:
    report     Period progress report for one project
    lookahead  Predicted completion dates of active projects
    forecast   Period-bucketed revenue forecast
    diagnose   Unmatched, ambiguous and excluded entries
    periods    List recent period keys
"""
from progress_recon.cli import cli


if __name__ == '__main__':
    cli()
