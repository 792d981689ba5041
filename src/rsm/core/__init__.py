"""Core engine, configuration and documentation helpers for rsm."""
