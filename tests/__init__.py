"""
Bakehouse Test Suite

Tests are organized by concern:
- test_prep_item_derivation.py: bill-of-materials scaling and recipe degradation
- test_batch_generation.py: order aggregation and manual creation
- test_batch_lifecycle.py: stages, split, merge, edit and delete
- test_prep_list.py: the per-day prep list and listings
- test_sources.py: HTTP recipe and order adapters
- test_domain_events.py: outbox publisher and dispatcher
- test_production_routes.py: JSON API and CLI commands
"""
