"""Allow ``python -m briefrag.cli`` execution."""

from briefrag.cli.ingest import main

main()
