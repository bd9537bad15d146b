# =============================================================================
# src/cli/__main__.py — Package Entry Point
# =============================================================================
#
# Running the CLI package itself (`python -m src.cli`) delegates to the
# archive maintenance tool, the only CLI this project ships:
#     python -m src.cli import
#     python -m src.cli audit
# =============================================================================

"""Allow ``python -m src.cli`` execution."""

from src.cli.archive import main

main()
