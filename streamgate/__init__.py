"""
StreamGate: streaming gateway for upstream LLM providers.
"""

__version__ = "0.1.0"
