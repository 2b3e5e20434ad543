"""Soil moisture SMS alert service."""
