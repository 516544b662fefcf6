"""
LogWeave - Log Ingestion & Correlation Engine

Reconstructs a structured, correlated view of interleaved multi-service logs:
- ingest: field extraction, service-pattern detection, parsing, grouping
- tracing: span-forest reconstruction
- analysis: causal-analysis engine adapter
"""

__version__ = "0.1.0"

__all__ = ['ingest', 'tracing', 'analysis', 'pipeline']
