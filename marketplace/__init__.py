"""Service marketplace backend with commission negotiation."""
