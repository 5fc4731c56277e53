"""Hypha RPC integration: session connection and service registration."""
