"""
Promotion Store - App Configuration
===================================
Persistent promotion definitions and redemption counters.

This app:
- Stores the promotions the catalog reads
- Holds the usage counters the ledger increments

This app does NOT:
- Evaluate discounts
- Author promotions (an external collaborator writes definitions)
"""

from django.apps import AppConfig


class PromotionStoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "engines.promotion.store"
    label = "promotion_store"
    verbose_name = "Promotion Store"
