"""Capability registry, dispatcher and the Metabase tool catalog."""
