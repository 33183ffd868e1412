"""HTTP, SSE and WebSocket surface of the agent monitor."""
