"""Odoo leave notifications bridged to mobile push."""
