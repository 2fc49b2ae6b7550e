"""Utility helpers for themevault."""
