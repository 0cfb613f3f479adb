"""Application layer: services composing domain logic and integrations."""
