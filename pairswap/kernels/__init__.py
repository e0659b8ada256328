"""
Kernel layer.

Pure, integer-only arithmetic used by the pool and the router. Nothing in
this package touches pool state or the ledger.
"""
