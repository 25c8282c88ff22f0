"""Amend/revert engine — the core of amendpkg.

This package provides the primitives for:
- Documents: loading and serializing package.json files
- Ledger: the record of original values that makes every patch reversible
- Capability API: the object amenders use to edit manifests
- Sessions: one apply or revert pass over one package directory
- Commit batch: deferred file writes, executed only after planning succeeds
- Driver: fanning sessions out over packages and their installed copies
"""
