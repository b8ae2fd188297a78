"""TaxFiler - links bank transactions to the tax documents that justify them."""

__version__ = "0.4.0"
__author__ = "TaxFiler Contributors"
