"""Default domain collaborators: in-memory catalog, REST sub-apps and GraphQL schema."""
