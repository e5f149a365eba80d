"""Batched conversation analytics: map-reduce use-case reports over an LLM."""

__version__ = "0.1.0"
