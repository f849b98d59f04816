"""Accounts reporting backend: payment aging, compliance and SLA breach reports."""
