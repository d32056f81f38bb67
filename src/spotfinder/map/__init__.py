"""Geo <-> screen projection and map layer state."""
