"""Local and OAuth authentication backed by server-side sessions."""
