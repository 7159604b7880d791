"""Client modules for external services."""

from inventory_sync.clients.supabase_gateway import SupabaseProductGateway, Subscription

__all__ = [
    "SupabaseProductGateway",
    "Subscription",
]
