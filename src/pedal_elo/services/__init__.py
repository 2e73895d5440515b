"""Services: catalogue, matchmaking sessions, storage, analysis and reporting."""
