"""testing — run every package's test suite against Elm and Lamdera compilers.

- models: result types and the interestingness ranking
- runner: run one package with every compiler
- pool: walker + worker tasks over the whole tree
- dashboard: live terminal view of a running pool
- export: CSV export of the non-passing rows
"""
