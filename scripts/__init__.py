"""Pandemic ridership change pipeline stages."""
