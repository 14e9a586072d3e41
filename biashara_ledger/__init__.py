"""
Biashara Ledger - Transaction Capture Pipeline

Turns what a small-business owner says, types or photographs into
canonical income/expense records.

DESIGN PRINCIPLES:
1. AI proposes → confidence gate decides → human confirms when unsure
2. Fail early, fail visibly (typed failures, never empty transactions)
3. No silent corrections
4. Every step must be auditable
5. Storage, OCR and the language model are swappable collaborators
"""

__version__ = "1.0.0"
__author__ = "Biashara Ledger Team"
