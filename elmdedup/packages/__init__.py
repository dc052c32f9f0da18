"""packages — the Elm package ecosystem on disk.

- index: fetch the list of published packages
- download: shallow-clone every package version
- layout: walk the cloned tree
"""
