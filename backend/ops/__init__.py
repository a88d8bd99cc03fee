"""
Operations support: structured logging, Prometheus metrics and health probes.
"""
