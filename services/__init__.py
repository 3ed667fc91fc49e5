"""Credential and verification lifecycle services."""
