"""
Shop Insights

Multi-tenant analytics backend for Shopify storefronts. Ingests customers,
orders and products through the Admin REST API and live webhooks, and serves
tenant-scoped aggregate queries to the dashboard.
"""

__version__ = "1.0.0"
__author__ = "Shop Insights Team"
