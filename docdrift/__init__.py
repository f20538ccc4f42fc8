"""Docdrift package.

Docdrift indexes a *workspace* of code and Markdown documentation and reports
documentation sections that have drifted away from the code they describe:
  1) A semantic index (chunks + embeddings + metadata)
  2) Similarity search over that index
  3) Staleness reports for documentation chunks

Entry points:
  - CLI: `docdrift`
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
