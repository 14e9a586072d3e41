"""Canonical transaction construction."""

from biashara_ledger.normalization.normalizer import (
    build_transaction,
    draft_fields,
    normalize,
    resolve_category,
)

__all__ = ["build_transaction", "draft_fields", "normalize", "resolve_category"]
