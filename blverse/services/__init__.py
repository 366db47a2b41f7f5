"""Service layer: business logic behind the v1 routes."""
