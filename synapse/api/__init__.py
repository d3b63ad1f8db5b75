"""Synapse HTTP API."""
