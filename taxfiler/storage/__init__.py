"""Persistence for transactions, documents and attachments."""
