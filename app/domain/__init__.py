"""
Domain layer for the VirtueMart to JTL-Wawi order integration.

This layer contains the shop configuration, the source order snapshot
read from VirtueMart and the payloads sent to JTL-Wawi.
"""
