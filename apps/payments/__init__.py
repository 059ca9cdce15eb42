"""SSLCommerz payment bridge."""
