"""CLI package for ptsd.

Modules:
    app.py       - Main Typer app, global options, sub-app registration
    pipeline.py  - Top-level commands (init, validate, status, context, review, ...)
    project.py   - config and prd commands
    feature.py   - Feature registry commands
    artifacts.py - seed, bdd and test commands
    task.py      - Task queue commands
    issues.py    - Known-issues registry commands
    hooks.py     - Git and tool-use hook commands
    display.py   - Rich tables for human output
    common.py    - Shared helpers (get_console, open_store, fail)

Every command body runs inside cli_errors(), which renders a PtsdError as
``err:<category> <message>`` (--agent) or a Rich line and exits with the
category's code.
"""
from ptsd.cli.app import app, cli_main

__all__ = ["app", "cli_main"]
