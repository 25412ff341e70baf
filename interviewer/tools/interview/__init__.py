"""Interview tools exposed to the realtime agent."""
