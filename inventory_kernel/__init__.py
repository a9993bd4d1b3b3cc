"""
Inventory Kernel

An append-only stock ledger for scannable inventory items with:
- Bounded per-item availability (0 <= available <= total)
- Atomic checkout/checkin (quantity mutation + ledger append)
- Conditional updates instead of a global inventory lock
- Replayable transaction history
"""

__version__ = "0.1.0"
