"""Webhook intake for subscription and app lifecycle topics."""
