"""Board, fleet, attack resolution and match orchestration."""
