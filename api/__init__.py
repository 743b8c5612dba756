"""HTTP endpoints served next to the responder loop."""
