"""
Inventory Kernel

Multi-location stock keeping with:
- Non-negative quantities enforced by conditional writes
- Conservation of quantity across transfers
- Append-only sale and wastage ledger
- Idempotent decrements keyed by request id
- Low-stock detection at any time
"""

__version__ = "0.1.0"
