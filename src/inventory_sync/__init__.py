"""Inventory Sync: product inventory synchronization against Supabase."""

__version__ = "1.0.0"
