"""
Rent Ledger

A monthly rent ledger for property owners and tenants with:
- Schedule generation (one record per lease month)
- Late fees derived on read from the due date
- Online payment through a gateway order, confirmed by a signed callback
- Manual settlement (cash, bank transfer) by the owner
- Full auditability via hash chain
"""

__version__ = "0.1.0"
