"""Folio Pipeline Engine: resume ingestion to portfolio generation."""
