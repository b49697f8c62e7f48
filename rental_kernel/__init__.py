"""
Rental Kernel

Core of the shelf-rental marketplace back office:
- Typed errors and structured logging
- Pure date-interval math shared by availability and revenue
- SQLAlchemy persistence for rental units, vendors, agreements and
  monthly revenue records
- Read-only selectors and an injectable query cache
"""

__version__ = "0.1.0"
