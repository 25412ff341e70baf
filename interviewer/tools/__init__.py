"""
Tool calling for the realtime interviewer.

Streamed tool-call fragments are buffered per call id, finalized into
invocations and routed to registered tools.
"""
