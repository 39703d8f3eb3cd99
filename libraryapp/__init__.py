"""Library App - Catalog and lending ledger package

This package contains the core application modules including:
- Book and loan models (book.py)
- Catalog store (catalog.py)
- Loan ledger (ledger.py)
- Query facade (queries.py)
- Database layer (database.py)
- Service status (status.py)
- API endpoints (api.py)
- CLI interface (main.py)
"""

__version__ = "2.1.0"
