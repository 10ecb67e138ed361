"""Utility helpers for Yarnstash."""
