# =============================================================================
# dokan_core/data/__init__.py
# Backend client construction
# =============================================================================
