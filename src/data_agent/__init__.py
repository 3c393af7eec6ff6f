"""Data Agent: streaming tool-use orchestration for conversational data analysis.

The agent drives a language model through rounds of respond, call tools, feed results
back, and forwards partial output to clients as typed event frames. Clients fold those
frames into displayable message blocks with a pure reducer.
"""

__version__ = "0.1.0"
