"""Runtime layer: stream combinators, wait strategies and observability.

Submodules:
    - streamkit.runtime.concurrency: early_zip_streams, zip_streams, settle_all
    - streamkit.runtime.observability: structured logging
"""
