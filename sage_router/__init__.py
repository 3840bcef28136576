"""
Sage Router - Request Routing and Resilience Layer

Routes marketing content requests across interchangeable LLM providers,
decides when a multi-step reasoning pass is warranted and falls back to
the next healthy provider when one fails.
"""

__version__ = "1.0.0"
