"""Command-line tools for briefrag.

- ``python -m briefrag.cli.ingest`` -- register and ingest local files,
  search the corpus, delete documents and show corpus statistics.

All CLI modules use argparse and build their own service graph from
:class:`~briefrag.config.settings.Settings`; heavy provider imports are
deferred into the functions that need them.
"""
