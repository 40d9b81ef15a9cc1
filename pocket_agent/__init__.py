"""
Pocket agent: conversational agent core for small on-device models.

Renders conversations into model-family prompt formats, parses tool calls
out of free text, dispatches them through a registry under privacy rules,
and drives the model/tool loop until a final answer.
"""

__version__ = "0.1.0"
