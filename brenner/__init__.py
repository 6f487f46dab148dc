"""Brenner protocol layer: Agent Mail transport, session state machine,
thread status reconstruction and tribunal dispatch."""

__version__ = "0.1.0"
