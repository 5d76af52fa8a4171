# =============================================================================
# dokan_core/__init__.py
# Dokan Hisab (দোকান হিসাব) - hybrid online/offline bookkeeping core
# =============================================================================

__version__ = "0.1.0"
