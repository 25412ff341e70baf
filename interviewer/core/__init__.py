"""
Event-synchronization core.

Keeps the candidate-facing view (is the agent talking, has the interview
finished) consistent with a live realtime session.
"""
