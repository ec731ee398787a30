"""Monitoring and self-regulation utilities for the SageSpace backend."""
