"""Shared helpers used across the collector and metric layers."""
