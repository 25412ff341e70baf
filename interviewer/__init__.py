"""
Realtime interviewer.

Event-synchronization core for a voice-first interview driven by a realtime
agent: tool-call reassembly, talking/idle presentation state and deferred
completion.
"""

__version__ = "1.0.0"
