"""
Scenario Planner module exports.

Synthesizes a multi-shot ad campaign scenario from reference images.
"""

from .decoder import decode_scenario, extract_response_text
from .llm_client import synthesize_scenario

__all__ = [
    "decode_scenario",
    "extract_response_text",
    "synthesize_scenario",
]
