"""Infrastructure layer: Spotify integration, rate limiting, observability, lifecycle."""
