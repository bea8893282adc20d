"""Bootstrap a single Vite + React preview sandbox and track it process-wide."""
