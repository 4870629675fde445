"""Helpers shared by the services and the presentation boundary."""
