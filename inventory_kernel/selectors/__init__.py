"""Read-only query selectors."""

from inventory_kernel.selectors.stock_selector import StockSelector

__all__ = ["StockSelector"]
