import asyncio
import logging

from inventory_sync.clients import SupabaseProductGateway
from inventory_sync.config import get_config
from inventory_sync.hooks import ProductsSyncState, create_products_sync
from inventory_sync.models import get_product_stock_status


def print_state(state: ProductsSyncState) -> None:
    """Print each state change as it arrives."""
    if state.is_loading:
        print("Loading products...")
        return
    if state.error:
        print(f"! {state.error}")
    print(f"{len(state.products)} products (authenticated: {state.is_authenticated})")
    for product in state.products:
        status = get_product_stock_status(product).value
        print(f"  {product.item_number:<12} {product.name:<30} stock={product.stock:<5} {status}")


async def watch_products():
    """Follow the products table until interrupted."""
    config = get_config()
    logging.basicConfig(level=config.logging.level)

    async with SupabaseProductGateway.from_config(config.supabase) as gateway:
        products_sync = create_products_sync(config, gateway=gateway)
        products_sync.subscribe(print_state)
        async with products_sync:
            print_state(products_sync.state)
            await asyncio.Event().wait()


def main():
    try:
        asyncio.run(watch_products())
    except KeyboardInterrupt:
        print("\nStopped watching products")


if __name__ == "__main__":
    main()
