# =============================================================================
# src/cli/__init__.py — CLI Module Overview
# =============================================================================
#
# Command-line tools for operators. These run out-of-band, never on a
# request path, and are the only code that opens the Local Store with the
# privileged (read/write) connection.
#
#   ARCHIVE (archive.py)
#      import — mirror the full and preview poet tiers from the Ganjoor
#               REST API into the SQLite Local Store
#      audit  — print row counts per table and per poet
#      clear  — wipe the Local Store (requires --yes)
#
# Architecture Notes:
#   - argparse for argument parsing, asyncio.run() around async handlers.
#   - Each command builds its own clients from Settings rather than going
#     through the web app's DI assembly, because CLI tools run as one-shot
#     scripts, not long-lived servers.
# =============================================================================

"""CLI tools for Ganjeh.

- ``python -m src.cli.archive`` — import, audit and clear the local store.
"""
