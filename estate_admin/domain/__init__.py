"""Billing calculations, form validation and list summaries."""
