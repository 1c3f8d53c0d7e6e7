"""Merchant lifecycle: onboarding and uninstall handling."""
