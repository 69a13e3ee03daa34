"""Command-line tools for stagelineage.

- ``python -m stagelineage.cli.sync`` — run one lineage synchronisation over
  a window of changes and print the resulting Processes.
"""
