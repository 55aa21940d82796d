"""Runtime helpers shared by pipeline entrypoints."""
