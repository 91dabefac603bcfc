"""Alignment pipeline: request contract, orchestrator and HTTP surface."""
