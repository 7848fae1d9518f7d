"""Flask web layer for the product catalog API."""
