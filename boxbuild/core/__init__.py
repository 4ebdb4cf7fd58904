"""Core engine: definition store, dependency graph, change detection, builds."""
