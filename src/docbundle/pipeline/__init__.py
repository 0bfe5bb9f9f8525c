"""
Pipeline module for docbundle runs.

Provides the per-row worker, the document fetcher, output path helpers and the
run coordinator. The coordinator can be driven from the CLI or embedded in
other orchestration code.
"""
