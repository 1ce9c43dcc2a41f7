"""Utility helpers for running commands, chroots and mounts."""
